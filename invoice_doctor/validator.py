"""
Row validation for invoice grids.

validate() consumes the grid produced by tokenizer.parse() and returns the
typed records plus every diagnostic found. Malformed data never raises; it is
reported as diagnostics. Structural problems (too few rows, missing headers)
stop the run with zero records, a bad required number drops only its row, and
price inconsistencies only annotate records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from invoice_doctor.diagnostics import (
    Diagnostic,
    PriceInconsistency,
    RowError,
    invalid_input_error,
    invalid_number_error,
    missing_headers_error,
)
from invoice_doctor.numeric import parse_numeric, parse_optional_numeric
from invoice_doctor.records import Invoice, sort_records
from invoice_doctor.schema import (
    DEFAULT_CONTRACT,
    OPTIONAL_NUMERIC_FIELDS,
    REQUIRED_NUMERIC_FIELDS,
    HeaderContract,
    clean_cell,
    sort_key,
)
from invoice_doctor.tokenizer import parse

SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD = 0.25


@dataclass
class ValidationResult:
    records: list[Invoice] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def row_errors(self) -> list[RowError]:
        return [item for item in self.diagnostics if isinstance(item, RowError)]

    @property
    def price_findings(self) -> list[PriceInconsistency]:
        return [item for item in self.diagnostics if isinstance(item, PriceInconsistency)]


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def _item_key(value: str) -> str:
    return clean_cell(value).lower()


def build_price_index(grid: list[list[str]], item_idx: int, price_idx: int) -> dict[str, set[float]]:
    """Distinct prices per lower-cased item name across all data rows."""
    index: dict[str, set[float]] = {}
    for row in grid[1:]:
        if len(row) <= max(item_idx, price_idx):
            continue
        name = _item_key(row[item_idx])
        price = parse_numeric(row[price_idx])
        if name and not math.isnan(price):
            index.setdefault(name, set()).add(price)
    return index


def is_significant(prices: set[float], threshold: float = SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD) -> bool:
    lowest = min(prices)
    highest = max(prices)
    return lowest > 0 and (highest - lowest) / lowest > threshold


def original_case_name(grid: list[list[str]], item_idx: int, key: str) -> str:
    for row in grid[1:]:
        if item_idx < len(row) and _item_key(row[item_idx]) == key:
            return clean_cell(row[item_idx])
    return key


def find_price_inconsistencies(
    grid: list[list[str]],
    item_idx: int,
    price_idx: int,
    threshold: float = SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD,
) -> tuple[list[PriceInconsistency], set[str], set[str]]:
    """
    Return (findings sorted by item, inconsistent keys, significant keys).

    The price index only lives for the duration of this call.
    """
    price_index = build_price_index(grid, item_idx, price_idx)
    inconsistent = {name for name, prices in price_index.items() if len(prices) > 1}
    significant = {name for name in inconsistent if is_significant(price_index[name], threshold)}

    findings = [
        PriceInconsistency(
            item=original_case_name(grid, item_idx, name),
            prices=tuple(sorted(price_index[name])),
            significant=name in significant,
        )
        for name in sorted(inconsistent, key=sort_key)
    ]
    return findings, inconsistent, significant


def build_record(
    row: list[str],
    row_num: int,
    columns: dict[str, int],
    contract: HeaderContract,
    inconsistent: set[str],
    significant: set[str],
) -> tuple[Invoice | None, list[RowError]]:
    errors: list[RowError] = []
    numbers: dict[str, float] = {}
    for name in REQUIRED_NUMERIC_FIELDS:
        raw = _cell(row, columns[name])
        value = parse_numeric(raw)
        if math.isnan(value):
            errors.append(invalid_number_error(row_num, contract.label(name), raw))
        numbers[name] = value
    if errors:
        return None, errors

    for name in OPTIONAL_NUMERIC_FIELDS:
        numbers[name] = parse_optional_numeric(_cell(row, columns[name]))

    key = _item_key(_cell(row, columns["item"]))
    record = Invoice(
        request_date=_cell(row, columns["request_date"]),
        completion_date=_cell(row, columns["completion_date"]),
        customer=_cell(row, columns["customer"]),
        item=_cell(row, columns["item"]),
        unit=_cell(row, columns["unit"]),
        has_price_inconsistency=key in inconsistent,
        has_significant_price_inconsistency=key in significant,
        **numbers,
    )
    return record, []


def validate(
    grid: list[list[str]],
    contract: HeaderContract = DEFAULT_CONTRACT,
    threshold: float = SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD,
) -> ValidationResult:
    result = ValidationResult()

    if len(grid) < 2:
        result.diagnostics.append(invalid_input_error())
        return result

    header = grid[0]
    missing = contract.missing_headers(header)
    if missing:
        result.diagnostics.append(missing_headers_error(missing))
        return result

    columns = contract.resolve(header)
    findings, inconsistent, significant = find_price_inconsistencies(
        grid, columns["item"], columns["price"], threshold
    )
    result.diagnostics.extend(findings)

    records: list[Invoice] = []
    for offset, row in enumerate(grid[1:], start=1):
        if not "".join(row).strip():
            continue
        record, errors = build_record(row, offset + 1, columns, contract, inconsistent, significant)
        result.diagnostics.extend(errors)
        if record is not None:
            records.append(record)

    result.records = sort_records(records)
    return result


def validate_text(
    text: str,
    contract: HeaderContract = DEFAULT_CONTRACT,
    threshold: float = SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD,
) -> ValidationResult:
    """Tokenize then validate a complete delimited-text document."""
    return validate(parse(text), contract=contract, threshold=threshold)
