"""
Presentation helpers shared by the CLI and the web front-end.

Nothing here formats currency; numbers are passed through for the caller to
render.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from invoice_doctor.config import DEFAULT_PAGE_SIZE, DEFAULT_SAMPLE_LIMIT
from invoice_doctor.numeric import format_number
from invoice_doctor.records import Invoice


@dataclass(frozen=True)
class Page:
    records: list[Invoice]
    number: int
    total_pages: int
    start_index: int

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages


def paginate(records: list[Invoice], page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> Page:
    """Slice one page of records; out-of-range page numbers are clamped."""
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    total_pages = math.ceil(len(records) / per_page)
    number = min(max(page, 1), max(total_pages, 1))
    start = (number - 1) * per_page
    return Page(
        records=records[start : start + per_page],
        number=number,
        total_pages=total_pages,
        start_index=start,
    )


def row_highlight(record: Invoice) -> str | None:
    """Highlight level for a table row: "significant", "inconsistent" or None."""
    return record.warning_level


def inconsistent_records(records: list[Invoice]) -> list[Invoice]:
    return [record for record in records if record.has_price_inconsistency]


def prompt_sample(records: list[Invoice], limit: int = DEFAULT_SAMPLE_LIMIT) -> str:
    """Compact text sample of the first records for a question-answering model."""
    sample = records[:limit]
    lines = [
        "{"
        f"request_date: {record.request_date}, "
        f"customer: {record.customer}, "
        f"item: {record.item}, "
        f"price: {format_number(record.price)}, "
        f"quantity: {format_number(record.quantity)}, "
        f"unit: {record.unit}, "
        f"discount: {format_number(record.discount)}, "
        f"final_total: {format_number(record.final_total)}"
        "}"
        for record in sample
    ]
    heading = f"Sales data summary (sample {len(sample)} of {len(records)} total rows):"
    return "\n".join([heading, *lines])
