"""Input rules for pages and messages.

Every check here runs before the service touches storage. Failures raise
``ValidationError`` carrying one entry per offending field so the API can
answer with ``{"errors": [...], "message": ...}``.
"""
import re
from typing import Any, Optional

import bleach

from say2me.core import constants
from say2me.core.exceptions import ValidationError

# 줄바꿈(\n)과 탭(\t)을 제외한 제어 문자
_CONTROL_CHARS = "".join(map(chr, list(range(0, 9)) + list(range(11, 32)) + [127]))
_CONTROL_CHARS_RE = re.compile("[%s]" % re.escape(_CONTROL_CHARS))

USERNAME_RULE = (
    f"Username must be {constants.USERNAME_MIN_LENGTH}-{constants.USERNAME_MAX_LENGTH} characters "
    "and may only contain letters, numbers, underscore and dash"
)
MESSAGE_RULE = (
    f"Message must be {constants.MESSAGE_MIN_LENGTH}-{constants.MESSAGE_MAX_LENGTH} characters"
)


def strip_control_chars(s: str) -> str:
    if not s:
        return s
    return _CONTROL_CHARS_RE.sub("", s)


def sanitize_text(s: str) -> str:
    """Escape every tag so stored text can never run as markup.

    ``bleach`` leaves existing character entities alone, so running this on
    already-sanitized text returns it unchanged.
    """
    s = strip_control_chars(s)
    return bleach.clean(s, tags=set(), attributes={}, strip=False)


def validate_username(username: Any) -> str:
    if not isinstance(username, str):
        raise ValidationError.for_field("username", USERNAME_RULE)
    candidate = username.strip()
    if not (constants.USERNAME_MIN_LENGTH <= len(candidate) <= constants.USERNAME_MAX_LENGTH):
        raise ValidationError.for_field("username", USERNAME_RULE, candidate)
    if not constants.USERNAME_PATTERN.match(candidate):
        raise ValidationError.for_field("username", USERNAME_RULE, candidate)
    return candidate


def clean_message_text(text: Any) -> str:
    """Trim, length-check and sanitize a message body."""
    if not isinstance(text, str):
        raise ValidationError.for_field("text", MESSAGE_RULE)
    trimmed = strip_control_chars(text).strip()
    if not (constants.MESSAGE_MIN_LENGTH <= len(trimmed) <= constants.MESSAGE_MAX_LENGTH):
        raise ValidationError.for_field("text", MESSAGE_RULE)
    # bleach가 HTML 주석을 제거하므로 주석뿐인 메시지는 빈 문자열이 됨
    cleaned = sanitize_text(trimmed).strip()
    if not cleaned:
        raise ValidationError.for_field("text", MESSAGE_RULE)
    return cleaned


def parse_page(raw: Optional[Any]) -> int:
    # 숫자가 아니거나 1 미만이면 1페이지
    try:
        page = int(raw)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1
