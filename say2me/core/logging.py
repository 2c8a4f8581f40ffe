import sys
from logging.config import dictConfig

from say2me.core.config import settings


def setup_logging():
    level = "DEBUG" if settings.DEBUG else "INFO"
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                },
                # 클라이언트 주소/User-Agent는 의도적으로 남기지 않음
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | %(method)s | "
                        "%(path)s | %(status_code)s | %(process_time_ms)sms"
                    ),
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                },
            },
            "loggers": {
                "access": {
                    "handlers": ["access_console"],
                    "level": "INFO",
                    "propagate": False,
                },
            },
            "root": {
                "level": level,
                "handlers": ["console"],
            },
        }
    )
