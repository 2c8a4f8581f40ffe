# say2me/models/__init__.py
from .user import User
from .message import Message
from say2me.core.database import Base


# 이것들을 expose 해야 create_all이 인식함
__all__ = [
    "Base",
    "User",
    "Message",
]
