"""
Name and value normalization utilities.

Used for entity matching, code generation and numeric cell parsing.
Normalizations are composable — each is a small function
that can be chained.
"""

import re
from decimal import Decimal, InvalidOperation


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace and strip."""
    return re.sub(r"\s+", " ", value.strip())


def normalize_case(value: str) -> str:
    """Lowercase for case-insensitive comparison."""
    return value.lower()


def normalize_identifier(value: str) -> str:
    """
    Standard name normalization chain.
    'MEDIS  (PTY) LTD' → 'medis (pty) ltd'
    '  Gloves   ' → 'gloves'
    """
    return normalize_case(normalize_whitespace(value))


def strip_to_alphanum(value: str) -> str:
    """Strip all non-alphanumeric characters. Case is preserved."""
    return re.sub(r"[^A-Za-z0-9]", "", value)


def names_match(a: str | None, b: str | None) -> bool:
    """Case-insensitive exact comparison of two entity or item names."""
    if a is None or b is None:
        return False
    return normalize_identifier(a) == normalize_identifier(b)


# ─── Numeric Cells ────────────────────────────────────────────

# Currency marks seen in practice-management exports: $12.50, R220.89, €3
_CURRENCY_PREFIX = re.compile(r"^(?:[$€£]|R(?=\s*-?\d))\s*")


def parse_amount(value: str) -> Decimal | None:
    """
    Parse a numeric cell leniently.

    Accepts surrounding whitespace, a leading currency mark and thousands
    separators. Returns None when the cell is not a number.
    '1,250.00' → 1250.00
    'R220.89'  → 220.89
    'n/a'      → None
    """
    cleaned = value.strip()
    if not cleaned:
        return None
    cleaned = _CURRENCY_PREFIX.sub("", cleaned)
    cleaned = cleaned.replace(",", "").replace(" ", "")
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number


def normalize_numeric(value: str) -> str:
    """
    Normalize numeric strings for display and comparison.
    Strips trailing zeros and normalizes representation.
    """
    number = parse_amount(value)
    if number is None:
        return value.strip()
    if number == number.to_integral_value():
        return str(int(number))
    return str(number.normalize())
