import html
import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_text(value: Optional[str], max_length: int = 255) -> Optional[str]:
    """
    Strip and length-check a value that is stored as given (kinds, references).

    Returns None for None or blank input.

    Raises:
        ValueError: If input exceeds max_length
    """
    if value is None:
        return None

    value = _CONTROL_CHARS.sub("", str(value)).strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")
    return value


def sanitize_text(value: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Strip and HTML-escape free text typed by a requester.

    The limit applies to the escaped result, which is what gets stored.

    Raises:
        ValueError: If the escaped input exceeds max_length
    """
    value = clean_text(value, max_length=max_length)
    if value is None:
        return None

    escaped = html.escape(value, quote=True)
    if len(escaped) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters once escaped")
    return escaped
