"""
Quote-aware splitting of comma-delimited text into a grid of string cells.

Lines are split before quotes are scanned, so a quoted cell cannot span
lines. Malformed quoting never raises: an unterminated quote simply absorbs
the rest of its line into the current cell.
"""

from __future__ import annotations

import re

from invoice_doctor.schema import clean_cell

LINE_BREAK_RE = re.compile(r"\r\n|\n")
QUOTE = '"'
DELIMITER = ","


def split_lines(text: str) -> list[str]:
    """Split on LF / CRLF and drop lines that are blank after trimming."""
    return [line for line in LINE_BREAK_RE.split(text) if clean_cell(line)]


def parse_line(line: str) -> list[str]:
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < len(line) and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            cells.append(clean_cell("".join(current)))
            current = []
        else:
            current.append(char)
        i += 1
    cells.append(clean_cell("".join(current)))
    return cells


def parse(text: str) -> list[list[str]]:
    """Turn raw delimited text into rows of trimmed cells (no schema knowledge)."""
    if not isinstance(text, str):
        raise TypeError(f"parse() expects str, got {type(text).__name__}")
    return [parse_line(line) for line in split_lines(text)]
