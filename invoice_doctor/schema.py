"""
Header contract for invoice exports.

The column order in the source file does not matter; every required header
must be present in the first row (matched case-insensitively after trimming).
"""

from __future__ import annotations

import unicodedata
from typing import Mapping

FIELDS = (
    "request_date",
    "completion_date",
    "customer",
    "item",
    "quantity",
    "unit",
    "price",
    "total",
    "discount",
    "service_fee",
    "final_total",
)

DEFAULT_HEADER_LABELS = {
    "request_date": "Tgl Permintaan",
    "completion_date": "Tgl Selesai",
    "customer": "Pemesan / Cabang",
    "item": "Item",
    "quantity": "Jumlah",
    "unit": "Satuan",
    "price": "Harga",
    "total": "Total",
    "discount": "Diskon",
    "service_fee": "Biaya Jasa",
    "final_total": "Total + Biaya Jasa - Diskon",
}

REQUIRED_NUMERIC_FIELDS = ("quantity", "price", "total", "final_total")
OPTIONAL_NUMERIC_FIELDS = ("discount", "service_fee")


def clean_cell(value: str | None) -> str:
    """Trim whitespace and byte-order marks the way spreadsheet exports need."""
    if value is None:
        return ""
    return value.strip().strip("\ufeff").strip()


def normalise_header(value: str | None) -> str:
    return clean_cell(value).lower()


def sort_key(text: str) -> tuple[str, str]:
    """
    Locale-style collation key.

    Accents and case are ignored on the first pass; ties put lower case
    before upper case, which matches the usual browser collation order.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), text.swapcase()


class HeaderContract:
    """Ordered field -> header label mapping used to locate columns by name."""

    def __init__(self, labels: Mapping[str, str] | None = None) -> None:
        merged = dict(DEFAULT_HEADER_LABELS)
        for field, label in (labels or {}).items():
            if field not in merged:
                raise KeyError(f"Unknown invoice field: {field}")
            merged[field] = label
        self.labels = {field: merged[field] for field in FIELDS}

    @property
    def display_headers(self) -> list[str]:
        return [self.labels[field] for field in FIELDS]

    @property
    def required_headers(self) -> list[str]:
        return [normalise_header(label) for label in self.display_headers]

    def label(self, field: str) -> str:
        return self.labels[field]

    def missing_headers(self, header_row: list[str]) -> list[str]:
        present = {normalise_header(cell) for cell in header_row}
        return [name for name in self.required_headers if name not in present]

    def resolve(self, header_row: list[str]) -> dict[str, int]:
        """Map each field to the first column whose header matches its label."""
        normalised = [normalise_header(cell) for cell in header_row]
        return {
            field: normalised.index(normalise_header(self.labels[field]))
            for field in FIELDS
        }


DEFAULT_CONTRACT = HeaderContract()
