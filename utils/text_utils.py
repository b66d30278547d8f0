"""
Text utilities for matching human-typed names against catalog names.

Used by lookup tables, name resolution and bulk correction.
"""

import re
import unicodedata
from typing import Any, Optional

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_ASCII_DIGITS = re.compile(r"[0-9]+")


def normalize_name(name: Optional[Any]) -> str:
    """
    Normalize a name for comparison/lookup.

    - "  Kitchen  " → "kitchen"
    - "Front-of-House" → "frontofhouse"
    - "Café   Bar" → "cafe bar"

    Args:
        name: Raw name (any scalar; None becomes "")

    Returns:
        Lowercase, accent-free string without punctuation and with
        single spaces between words
    """
    if name is None:
        return ""

    text = str(name).strip().lower()

    # Normalize unicode (NFD decomposition separates base chars from accents)
    decomposed = unicodedata.normalize("NFD", text)
    text = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")

    text = _PUNCTUATION.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def split_list(value: Optional[Any]) -> list[str]:
    """
    Split a comma-separated cell into trimmed, non-empty tokens.

    Lists and tuples are already split: each item is one token.

    Args:
        value: Cell value ("Kitchen, Bar", ["Kitchen", "Bar"], [1, 2], a
            single name, or None)

    Returns:
        List of tokens in input order
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if not is_blank(item)]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def is_numeric_id(token: str) -> bool:
    """True when the token is made only of ASCII digits ("12", not "1.5" or "²")."""
    return bool(_ASCII_DIGITS.fullmatch(token))


def is_blank(value: Optional[Any]) -> bool:
    """True for None, empty/whitespace strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False
