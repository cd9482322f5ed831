#!/usr/bin/env python3
from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from invoice_doctor.config import load_settings
from invoice_doctor.diagnostics import PriceInconsistency, warning_count
from invoice_doctor.exporter import to_csv, workbook_bytes
from invoice_doctor.loader import decode_bytes
from invoice_doctor.numeric import format_number
from invoice_doctor.validator import validate_text
from invoice_doctor.views import inconsistent_records, paginate, prompt_sample, row_highlight

HIGHLIGHT_COLORS = {
    "significant": "background-color: #f8cbad",
    "inconsistent": "background-color: #fff2cc",
}
TABLE_COLUMNS = ["Request date", "Customer", "Item", "Price", "Quantity", "Unit", "Final total"]


def ensure_state() -> None:
    st.session_state.setdefault("result", None)
    st.session_state.setdefault("warnings", [])
    st.session_state.setdefault("page", 1)


def records_frame(records) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Request date": record.request_date,
                "Customer": record.customer,
                "Item": record.item,
                "Price": record.price,
                "Quantity": record.quantity,
                "Unit": record.unit,
                "Final total": record.final_total,
            }
            for record in records
        ],
        columns=TABLE_COLUMNS,
    )


def styled_page(records):
    frame = records_frame(records)
    levels = [row_highlight(record) for record in records]

    def highlight(row: pd.Series) -> list[str]:
        style = HIGHLIGHT_COLORS.get(levels[row.name], "")
        return [style] * len(row)

    return frame.style.apply(highlight, axis=1)


def render_diagnostics(result) -> None:
    diagnostics = result.diagnostics
    if not diagnostics:
        st.success(f"Validation passed. All {len(result.records)} rows are valid.")
        return

    st.warning(f"Found {warning_count(diagnostics)} warnings. Review them below; valid rows are still loaded.")
    for item in diagnostics:
        if isinstance(item, PriceInconsistency):
            prices = ", ".join(format_number(price) for price in item.prices)
            marker = " (significant)" if item.significant else ""
            st.markdown(f"- Inconsistent prices for **{item.item}**{marker}: {prices}")
        elif item.row > 0:
            st.markdown(f"- **Row {item.row}:** {item.message}")
        else:
            st.error(item.message)

    flagged = inconsistent_records(result.records)
    if flagged:
        st.subheader("Price inconsistency recap")
        st.dataframe(styled_page(flagged), width="stretch", hide_index=True)


def render_table(result, page_size: int) -> None:
    st.subheader("Sales data preview")
    page = paginate(result.records, st.session_state["page"], page_size)
    st.dataframe(styled_page(page.records), width="stretch", hide_index=True)
    if page.total_pages > 1:
        left, middle, right = st.columns([1, 2, 1])
        if left.button("Previous", disabled=not page.has_previous):
            st.session_state["page"] = page.number - 1
            st.rerun()
        middle.caption(f"Page {page.number} of {page.total_pages}")
        if right.button("Next", disabled=not page.has_next):
            st.session_state["page"] = page.number + 1
            st.rerun()


def render_sample(result, limit: int) -> None:
    with st.expander("Data sample for questions"):
        st.code(prompt_sample(result.records, limit), language=None)


def render_downloads(result, contract) -> None:
    left, right = st.columns(2)
    left.download_button(
        "Download results (.csv)",
        data=to_csv(result.records, contract).encode("utf-8"),
        file_name="invoice_validation.csv",
        mime="text/csv",
    )
    right.download_button(
        "Download results (.xlsx)",
        data=workbook_bytes(result.records, result.diagnostics, contract),
        file_name="invoice_validation.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def main() -> None:
    st.set_page_config(page_title="invoice-doctor", page_icon="🧾", layout="wide")
    ensure_state()
    settings = load_settings()

    st.title("invoice-doctor")
    st.caption("Upload a CSV export of the sales sheet to check headers, numbers and price consistency.")

    upload = st.file_uploader("CSV export", type=["csv", "txt"])
    if st.button("Validate", disabled=upload is None):
        loaded = decode_bytes(upload.getvalue())
        st.session_state["result"] = validate_text(
            loaded["text"],
            contract=settings.contract,
            threshold=settings.significance_threshold,
        )
        st.session_state["warnings"] = loaded["warnings"]
        st.session_state["page"] = 1

    result = st.session_state["result"]
    if result is None:
        return

    for warning in st.session_state["warnings"]:
        st.info(warning)
    render_diagnostics(result)
    if result.records:
        render_downloads(result, settings.contract)
        render_table(result, settings.page_size)
        render_sample(result, settings.sample_limit)


if __name__ == "__main__":
    main()
