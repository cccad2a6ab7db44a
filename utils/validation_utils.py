"""
utils/validation_utils.py

Purpose: Input validation

- Greeting / menu / intent detection on free text
- Menu option matching by number or keyword
- Yield, email and phone number parsing
- Input sanitization
"""

import re
from typing import Iterable, Optional

from utils.constants import (
    GREETING_PATTERN,
    MENU_COMMAND,
    PRODUCTS_ONLY_PATTERN,
    SHOW_PRODUCTS_PATTERN,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_text(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def is_menu_command(text: Optional[str]) -> bool:
    return normalize_text(text) == MENU_COMMAND


def is_greeting(text: Optional[str]) -> bool:
    """
    True when a greeting word appears as a whole word.

    "hi there" and "Hello!" match; "shipping" does not.
    """
    return bool(text and GREETING_PATTERN.search(text))


def is_show_products_request(text: Optional[str]) -> bool:
    if not text:
        return False
    return bool(SHOW_PRODUCTS_PATTERN.search(text) or PRODUCTS_ONLY_PATTERN.match(text))


def matches_option(text: Optional[str], number: str, keywords: Iterable[str] = ()) -> bool:
    """
    Checks a menu reply against an option.

    Args:
        text: User's reply
        number: Option number ("1".."7")
        keywords: Words that select the option when contained in the reply

    Returns:
        True if the reply is the number or contains any keyword
    """
    value = normalize_text(text)
    if not value:
        return False
    if value == number:
        return True
    return any(keyword in value for keyword in keywords)


def parse_positive_number(text: Optional[str]) -> Optional[float]:
    """
    Parses a yield like "3", "3.5" or "3,5 tonnes".

    Returns:
        Float > 0, or None if the text is not a positive number
    """
    if not text:
        return None
    match = re.search(r"\d+(?:[.,]\d+)?", text)
    if not match:
        return None
    try:
        value = float(match.group(0).replace(",", "."))
    except ValueError:
        return None
    return value if value > 0 else None


def parse_selection(text: Optional[str], count: int) -> Optional[int]:
    """
    Parses a 1-based list selection.

    Returns:
        Zero-based index, or None if out of range
    """
    value = normalize_text(text)
    if not value.isdigit():
        return None
    index = int(value) - 1
    if 0 <= index < count:
        return index
    return None


def is_valid_email(text: Optional[str]) -> bool:
    return bool(text and EMAIL_PATTERN.match(text.strip()))


def sanitize_phone(text: Optional[str]) -> Optional[str]:
    """
    Normalizes a phone number reply to "+<digits>".

    Accepts spaces, dashes and brackets; requires 9-15 digits.
    """
    if not text:
        return None
    digits = re.sub(r"\D", "", text)
    if not 9 <= len(digits) <= 15:
        return None
    return f"+{digits}"


def sanitize_input(text: Optional[str], max_length: int = 500) -> str:
    """
    Sanitizes user input by removing control characters and limiting length.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""
    text = "".join(char for char in text if char.isprintable() or char in "\n\t")
    return text.strip()[:max_length]
