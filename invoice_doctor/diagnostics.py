"""
Diagnostics produced by a validation run.

A diagnostic is either a RowError (structural and per-field problems tied to
a row number) or a PriceInconsistency (an aggregate finding for one item).
Severity and rule ids live here so the validator, report and CLI agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from invoice_doctor.numeric import format_number

ISSUE_DEFINITIONS = {
    "structural_invalid_input": {
        "severity": "critical",
        "description": "The input has no header row or no data rows.",
        "evidence": "Fewer than two non-blank lines were found.",
    },
    "structural_missing_headers": {
        "severity": "critical",
        "description": "One or more required column headers are missing.",
        "evidence": "The first row does not contain every required header name.",
    },
    "field_invalid_number": {
        "severity": "warning",
        "description": "A required numeric cell could not be read as a number; the row is dropped.",
        "evidence": "Nothing numeric was left after removing currency symbols and letters.",
    },
    "price_inconsistency": {
        "severity": "warning",
        "description": "The same item appears with more than one unit price.",
        "evidence": "Two or more distinct prices were found for one item name.",
    },
    "price_inconsistency_significant": {
        "severity": "critical",
        "description": "An item's prices differ by more than the significance threshold.",
        "evidence": "(max - min) / min exceeds the threshold and the minimum price is positive.",
    },
}

SEVERITIES = ("critical", "warning", "info")


def severity_for(issue_id: str) -> str:
    return ISSUE_DEFINITIONS[issue_id]["severity"]


@dataclass(frozen=True)
class RowError:
    row: int
    message: str
    issue_id: str = "field_invalid_number"
    field: str | None = None
    value: str | None = None

    kind: ClassVar[str] = "row_error"

    @property
    def severity(self) -> str:
        return severity_for(self.issue_id)

    @property
    def is_structural(self) -> bool:
        return self.issue_id.startswith("structural_")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.issue_id,
            "severity": self.severity,
            "row": self.row,
            "message": self.message,
            "field": self.field,
            "value": self.value,
        }


@dataclass(frozen=True)
class PriceInconsistency:
    item: str
    prices: tuple[float, ...] = ()
    significant: bool = False

    kind: ClassVar[str] = "price_inconsistency"

    @property
    def issue_id(self) -> str:
        return "price_inconsistency_significant" if self.significant else "price_inconsistency"

    @property
    def severity(self) -> str:
        return severity_for(self.issue_id)

    @property
    def message(self) -> str:
        rendered = ", ".join(format_number(price) for price in self.prices)
        return f"Inconsistent prices for item '{self.item}'. Prices found: {rendered}."

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.issue_id,
            "severity": self.severity,
            "item": self.item,
            "prices": list(self.prices),
            "significant": self.significant,
            "message": self.message,
        }


Diagnostic = Union[RowError, PriceInconsistency]


def invalid_input_error() -> RowError:
    return RowError(
        row=0,
        message="Empty or invalid input; need a header row and at least one data row.",
        issue_id="structural_invalid_input",
    )


def missing_headers_error(missing: list[str]) -> RowError:
    return RowError(
        row=2,
        message=f"Missing header columns: {', '.join(missing)}.",
        issue_id="structural_missing_headers",
    )


def invalid_number_error(row: int, label: str, raw: str) -> RowError:
    return RowError(
        row=row,
        message=f"{label} is not a valid number: '{raw}'.",
        field=label,
        value=raw,
    )


def warning_count(diagnostics: list[Diagnostic]) -> int:
    """Findings a reviewer should look at: price issues and row-anchored errors."""
    return sum(
        1
        for item in diagnostics
        if isinstance(item, PriceInconsistency) or item.row > 0
    )


def severity_counts(diagnostics: list[Diagnostic]) -> dict[str, int]:
    counts = {severity: 0 for severity in SEVERITIES}
    for item in diagnostics:
        counts[item.severity] += 1
    return counts


def has_structural_error(diagnostics: list[Diagnostic]) -> bool:
    return any(isinstance(item, RowError) and item.is_structural for item in diagnostics)
