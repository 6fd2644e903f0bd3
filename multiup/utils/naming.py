"""File name sanitisation and remote key generation."""
import re
import time
from typing import Optional


MAX_NAME_LENGTH = 255
FALLBACK_NAME = "unnamed"

# Reserved characters, ASCII control characters and path separators
_FORBIDDEN = re.compile(r'[<>:"|?*\x00-\x1f/\\]')


def sanitize_file_name(name: Optional[str]) -> str:
    """
    Strip characters that are unsafe in object keys and archive entries.

    Removes reserved/control characters, path separators, ``..`` sequences and
    leading dots. Removal is repeated until nothing changes, so the result is a
    fixed point: ``sanitize_file_name(sanitize_file_name(x)) == sanitize_file_name(x)``.
    """
    value = name or ""
    while True:
        cleaned = _FORBIDDEN.sub("", value).replace("..", "").lstrip(".")
        if cleaned == value:
            break
        value = cleaned
    return value[:MAX_NAME_LENGTH] or FALLBACK_NAME


def submission_timestamp() -> int:
    """Milliseconds since epoch."""
    return int(time.time() * 1000)


def build_object_key(name: str, submitted_at: Optional[int] = None) -> str:
    """Remote key: ``<submission-timestamp>-<sanitized-file-name>``."""
    if submitted_at is None:
        submitted_at = submission_timestamp()
    return f"{submitted_at}-{sanitize_file_name(name)}"
