"""A1-notation helpers.

Columns are lettered A-Z, then AA-AZ, BA... Rows are 1-based. Indexes taken
and returned by these helpers are zero-based, like the API's GridRange.
"""

from __future__ import annotations

import re
from typing import Optional

_COLUMN_RE = re.compile(r"^[A-Z]{1,3}$")


def column_letter(index: int) -> str:
    """0 -> 'A', 25 -> 'Z', 26 -> 'AA'."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    letters = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_index(letters: str) -> int:
    """'A' -> 0, 'Z' -> 25, 'AA' -> 26."""
    letters = letters.strip().upper()
    if not _COLUMN_RE.match(letters):
        raise ValueError(f"Invalid column label: {letters!r}")
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def quote_sheet_name(name: str) -> str:
    """Quote a sheet title for use before '!' (embedded quotes are doubled)."""
    return "'" + name.replace("'", "''") + "'"


def sheet_range(name: str, cells: Optional[str] = None) -> str:
    """Build '<sheet>'!<cells>, or just the quoted title for the whole sheet."""
    quoted = quote_sheet_name(name)
    if not cells:
        return quoted
    return f"{quoted}!{cells}"

