"""
Common utility functions and helpers.
"""
from typing import List
import re
import unicodedata


# Typographic dashes that show up in document file names
_DASHES = "‐‑‒–—―−"


def normalize_skill_name(name: str) -> str:
    """
    Normalize a skill name for comparison.

    Args:
        name: Raw skill name

    Returns:
        Lowercased name with punctuation replaced by spaces
    """
    if not name:
        return ""
    name = unicodedata.normalize('NFKD', name)
    name = ''.join(ch for ch in name if not unicodedata.combining(ch))
    name = name.lower()
    # Underscore counts as a word character for \w, so treat it explicitly
    name = re.sub(r'[^\w\s]|_', ' ', name)
    name = re.sub(r'\s+', ' ', name)
    return name.strip()


def name_tokens(name: str, min_length: int = 4) -> List[str]:
    """
    Split a skill name into normalized words of at least min_length characters.

    Args:
        name: Raw skill name
        min_length: Minimum token length

    Returns:
        Tokens in order of appearance, duplicates removed
    """
    tokens: List[str] = []
    for word in normalize_skill_name(name).split(" "):
        if len(word) >= min_length and word not in tokens:
            tokens.append(word)
    return tokens


def normalize_dashes(text: str) -> str:
    """Replace typographic dashes with a plain hyphen."""
    return re.sub(f"[{_DASHES}]", "-", text)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is zero.

    Args:
        numerator: Numerator
        denominator: Denominator
        default: Default value if division fails

    Returns:
        Result of division or default
    """
    return numerator / denominator if denominator != 0 else default


def percentage(part: int, whole: int) -> float:
    """Share of whole as a percentage rounded to one decimal place."""
    return round(safe_divide(part * 100.0, whole), 1)


def progress_bar(part: int, whole: int, width: int = 30) -> str:
    """Render a fixed-width text progress bar."""
    filled = int(round(safe_divide(part, whole) * width))
    filled = max(0, min(width, filled))
    return "[" + "#" * filled + "-" * (width - filled) + "]"
