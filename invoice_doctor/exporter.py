"""
Exporters for validated invoices.

to_csv() renders the records back to comma-delimited text with a leading
warning column. build_workbook() produces the same rows as a styled .xlsx.
"""

from __future__ import annotations

import io
from typing import Any

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from invoice_doctor.diagnostics import Diagnostic, PriceInconsistency
from invoice_doctor.numeric import format_number
from invoice_doctor.records import WARNING_INCONSISTENT, WARNING_SIGNIFICANT, Invoice
from invoice_doctor.schema import DEFAULT_CONTRACT, HeaderContract

WARNING_HEADER = "Warning"
WARNING_LABELS = {
    WARNING_SIGNIFICANT: "Significant price difference (>25%) for this item.",
    WARNING_INCONSISTENT: "Price inconsistent with other entries for this item.",
}

FILL_INCONSISTENT = PatternFill("solid", fgColor="FFF2CC")   # soft yellow
FILL_SIGNIFICANT = PatternFill("solid", fgColor="F8CBAD")    # soft red


def warning_label(record: Invoice) -> str:
    return WARNING_LABELS.get(record.warning_level, "")


def escape_cell(value: Any) -> str:
    """Quote a cell only when it contains a delimiter, quote or newline."""
    text = "" if value is None else str(value)
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def export_headers(contract: HeaderContract = DEFAULT_CONTRACT) -> list[str]:
    return [WARNING_HEADER, *contract.display_headers]


def export_row(record: Invoice) -> list[str]:
    return [
        warning_label(record),
        record.request_date,
        record.completion_date,
        record.customer,
        record.item,
        format_number(record.quantity),
        record.unit,
        format_number(record.price),
        format_number(record.total),
        format_number(record.discount),
        format_number(record.service_fee),
        format_number(record.final_total),
    ]


def to_csv(records: list[Invoice], contract: HeaderContract = DEFAULT_CONTRACT) -> str:
    lines = [",".join(escape_cell(value) for value in export_headers(contract))]
    lines.extend(",".join(escape_cell(value) for value in export_row(record)) for record in records)
    return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════════
# WORKBOOK
# ══════════════════════════════════════════════════════════════════════════

def _style_sheet(ws, col_widths: list[int], header_color: str) -> None:
    fill = PatternFill("solid", fgColor=header_color)
    font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60) -> list[int]:
    if not rows:
        return []
    widths = [min_width] * len(rows[0])
    for row in rows:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(value)) + 2))
    return widths


def _workbook_row(record: Invoice) -> list[Any]:
    return [
        warning_label(record),
        record.request_date,
        record.completion_date,
        record.customer,
        record.item,
        record.quantity,
        record.unit,
        record.price,
        record.total,
        record.discount,
        record.service_fee,
        record.final_total,
    ]


def _diagnostic_row(item: Diagnostic) -> list[Any]:
    if isinstance(item, PriceInconsistency):
        return [item.issue_id, item.severity, "", item.item, item.message]
    return [item.issue_id, item.severity, item.row, item.field or "", item.message]


def build_workbook(
    records: list[Invoice],
    diagnostics: list[Diagnostic] | None = None,
    contract: HeaderContract = DEFAULT_CONTRACT,
) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()

    # ── Sheet 1: Invoices ───────────────────────────────────────────────
    ws1 = wb.active
    ws1.title = "Invoices"
    headers = export_headers(contract)
    rows_for_width = [headers]
    ws1.append(headers)
    for record in records:
        row_out = _workbook_row(record)
        ws1.append(row_out)
        rows_for_width.append(row_out)
        level = record.warning_level
        if level is not None:
            fill = FILL_SIGNIFICANT if level == WARNING_SIGNIFICANT else FILL_INCONSISTENT
            for cell in ws1[ws1.max_row]:
                cell.fill = fill
    _style_sheet(ws1, _infer_col_widths(rows_for_width), "4CAF50")   # green

    # ── Sheet 2: Diagnostics ────────────────────────────────────────────
    ws2 = wb.create_sheet("Diagnostics")
    diag_headers = ["rule_id", "severity", "row", "subject", "message"]
    diag_rows_for_width = [diag_headers]
    ws2.append(diag_headers)
    for item in diagnostics or []:
        row_out = _diagnostic_row(item)
        ws2.append(row_out)
        diag_rows_for_width.append(row_out)
    _style_sheet(ws2, _infer_col_widths(diag_rows_for_width), "E53935")   # red
    for cell in ws2["E"][1:]:
        cell.alignment = Alignment(wrap_text=True, vertical="top")

    return wb


def workbook_bytes(
    records: list[Invoice],
    diagnostics: list[Diagnostic] | None = None,
    contract: HeaderContract = DEFAULT_CONTRACT,
) -> bytes:
    buffer = io.BytesIO()
    build_workbook(records, diagnostics, contract).save(buffer)
    return buffer.getvalue()
