"""
Lenient number parsing for spreadsheet cells.

Currency symbols, letters and separators other than the period are dropped
before parsing, so "Rp 5.000" and "IDR 5000,-" both read as numbers.
"""

from __future__ import annotations

import math
import re

NON_NUMERIC_RE = re.compile(r"[^0-9.\-]+")
THOUSANDS_GROUPED_RE = re.compile(r"^\.*(-?\d{1,3}(?:\.\d{3})+)(?![\d.])")
LEADING_DECIMAL_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")


def strip_non_numeric(raw: str | None) -> str:
    return NON_NUMERIC_RE.sub("", raw or "")


def parse_numeric(raw: str | None) -> float:
    """
    Parse a cell as a number, returning NaN when nothing usable is left.

    A dotted thousands grouping ("5.000", "1.250.000") is read as an integer,
    also when it follows a stray period ("Rp. 5.000") or precedes a trailing
    dash ("5.000,-"). Otherwise the longest leading decimal literal wins, so
    trailing junk such as the "-" in "5000-" is ignored.
    """
    cleaned = strip_non_numeric(raw)
    grouped = THOUSANDS_GROUPED_RE.match(cleaned)
    if grouped:
        cleaned = grouped.group(1).replace(".", "")
    match = LEADING_DECIMAL_RE.match(cleaned)
    if not match:
        return math.nan
    value = float(match.group(0))
    if not math.isfinite(value):
        return math.nan
    return value


def parse_optional_numeric(raw: str | None) -> float:
    """Like parse_numeric, but blank or unparsable cells become 0."""
    value = parse_numeric(raw)
    if math.isnan(value) or value == 0:
        return 0.0
    return value


def is_number(value: float) -> bool:
    return not math.isnan(value)


def format_number(value: float) -> str:
    """Render integral floats without a trailing ".0"."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value)
