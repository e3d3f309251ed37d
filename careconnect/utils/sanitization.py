import html
import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


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


def clean_text_input(value: Optional[str], max_length: int = 5000) -> str:
    """
    Trim user text and strip control characters, keeping newlines and tabs.

    Raises:
        ValueError: If input is longer than max_length
    """
    if not value:
        return ""

    value = _CONTROL_CHARS.sub("", str(value)).strip()

    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return value


def text_to_html_paragraphs(text: str) -> list[str]:
    """
    Split free text into escaped HTML paragraphs.
    Blank lines separate paragraphs; single newlines become <br>.
    """
    paragraphs = []
    for block in text.split("\n\n"):
        block = block.strip()
        if not block:
            continue
        paragraphs.append(sanitize_string(block).replace("\n", "<br>"))
    return paragraphs
