import html
import re
from typing import Any, Optional

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return html.escape(str(value), quote=True)


def sanitize_dict(data: dict[str, Any], fields: Optional[list[str]] = None) -> dict[str, Any]:
    """
    Escape string values of a dictionary (one level deep).
    If fields is None, sanitizes all string values.
    """
    if not data:
        return data

    return {
        key: sanitize_string(value) if (fields is None or key in fields) and isinstance(value, str) else value
        for key, value in data.items()
    }


def clean_text(value: Optional[str], max_length: int = 1000) -> Optional[str]:
    """
    Trim free text and strip control characters before storage.
    HTML escaping happens when the text is rendered, not here.

    Raises:
        ValueError: If the text exceeds max_length
    """
    if value is None:
        return None

    value = CONTROL_CHARS.sub("", str(value)).strip()

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return value or None
