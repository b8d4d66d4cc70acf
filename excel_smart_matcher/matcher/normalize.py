"""
Key normalization shared by profiling, indexing and joining.

excel_smart_matcher/matcher/normalize.py

Handles the real-world key mismatches seen in spreadsheet lookups:
- numeric cells stored as 1001 vs 1001.0 vs "1001.0"
- leading/trailing whitespace
- case differences in text keys
"""

import re
import datetime

from decimal import Decimal
from typing import Optional

from excel_smart_matcher.core.table import Cell, CellKind
from excel_smart_matcher.matcher.errors import MatcherError


# Numeric text with a purely zero fraction
# Matches: "1001.0", "-7.000"
zero_fraction_rgx = re.compile(r'^([+-]?\d+)\.0+$')

# Plain decimal or scientific number text
# Matches: "12", "-3.5", ".5", "1e6"
numeric_text_rgx = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


class KeyCoercionError(MatcherError):
    """Raised when a key value cannot be turned into a comparable string."""
    pass


def canonical_number(value) -> str:
    """Canonical decimal string for a number: 1, 1.0 and 1.00 all give '1'."""
    if isinstance(value, int):
        return str(value)

    dec = Decimal(str(value))
    if dec == 0:
        return '0'
    return format(dec.normalize(), 'f')


def canonical_date(value) -> str:
    if isinstance(value, datetime.datetime):
        if value.time() == datetime.time(0, 0) and value.tzinfo is None:
            return value.date().isoformat()
        return value.isoformat(sep=' ')
    return value.isoformat()


def normalize_key(cell: Cell) -> Optional[str]:
    """
    Normalize a cell into its join key.

    Args:
        cell: Tagged cell value

    Returns:
        Normalized key string, or None for blank cells

    Raises:
        KeyCoercionError: If the value cannot be stringified
    """
    if cell.is_null:
        return None

    try:
        if cell.kind is CellKind.NUMBER:
            return canonical_number(cell.value)

        if cell.kind is CellKind.DATE:
            return canonical_date(cell.value)

        text = str(cell.value).strip()
    except Exception as e:
        raise KeyCoercionError(f"Cannot normalize key value {type(cell.value).__name__}: {e}") from e

    if not text:
        return None

    zero_fraction = zero_fraction_rgx.match(text)
    if zero_fraction:
        text = zero_fraction.group(1)

    return text.casefold()


def display_text(cell: Cell) -> Optional[str]:
    """Trimmed text form of a cell used for pattern checks, case preserved."""
    if cell.is_null:
        return None
    if cell.kind is CellKind.NUMBER:
        return canonical_number(cell.value)
    if cell.kind is CellKind.DATE:
        return canonical_date(cell.value)
    text = str(cell.value).strip()
    return text or None


def is_numeric_cell(cell: Cell) -> bool:
    """True for number cells and for text that parses as a plain number."""
    if cell.kind is CellKind.NUMBER:
        return True
    if cell.kind is CellKind.TEXT and isinstance(cell.value, str):
        return bool(numeric_text_rgx.match(cell.value.strip()))
    return False


# End of file #
