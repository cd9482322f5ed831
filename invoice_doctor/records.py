from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from invoice_doctor.schema import sort_key

WARNING_SIGNIFICANT = "significant"
WARNING_INCONSISTENT = "inconsistent"


@dataclass(frozen=True)
class Invoice:
    """One validated invoice line."""

    request_date: str
    completion_date: str
    customer: str
    item: str
    quantity: float
    unit: str
    price: float
    total: float
    discount: float
    service_fee: float
    final_total: float
    has_price_inconsistency: bool = False
    has_significant_price_inconsistency: bool = False

    @property
    def item_key(self) -> str:
        return self.item.strip().lower()

    @property
    def warning_level(self) -> str | None:
        if self.has_significant_price_inconsistency:
            return WARNING_SIGNIFICANT
        if self.has_price_inconsistency:
            return WARNING_INCONSISTENT
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def sort_records(records: Iterable[Invoice]) -> list[Invoice]:
    """Stable sort by item name using locale-style collation."""
    return sorted(records, key=lambda record: sort_key(record.item))
