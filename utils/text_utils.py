"""
Text utilities for import values.

Used to derive product slugs from titles and to split list cells.
"""

import re
import unicodedata
from typing import Optional


def clean_text(value: Optional[str]) -> Optional[str]:
    """
    Strip a cell value, returning None when nothing is left.

    Internal whitespace (including newlines in long descriptions) is kept.
    """
    if value is None:
        return None
    value = value.strip()
    return value or None


def slugify(title: str) -> str:
    """
    Build a URL-safe slug from a product title.

    Handles accents and punctuation:
    - "VVVF Elevator Motor" → "vvvf-elevator-motor"
    - "Motor @ 415V (Premium)" → "motor-415v-premium"
    - "Ascensor Óptimo" → "ascensor-optimo"

    Args:
        title: Product title

    Returns:
        Lowercase ASCII slug, or empty string if nothing usable remains
    """
    if not title:
        return ""

    # Normalize unicode (NFD decomposition separates base chars from accents)
    normalized = unicodedata.normalize('NFD', title)

    # Remove accent marks (combining characters in Unicode category 'Mn')
    ascii_title = ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )

    slug = re.sub(r'[^a-zA-Z0-9]+', '-', ascii_title.lower())
    return slug.strip('-')


def split_comma_list(value: Optional[str]) -> list[str]:
    """
    Split a comma-separated cell into trimmed, non-empty items.

    Order is kept and repeated items are dropped:
    - "passenger, freight,,passenger" → ["passenger", "freight"]
    """
    if not value or not value.strip():
        return []

    items: list[str] = []
    for item in value.split(','):
        item = item.strip()
        if item and item not in items:
            items.append(item)
    return items
