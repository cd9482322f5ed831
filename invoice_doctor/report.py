#!/usr/bin/env python3
"""
invoice-doctor report.py

Builds a JSON-able report and a plain-text rendering from one validation run.
"""

from __future__ import annotations

from typing import Any

from invoice_doctor import __version__ as TOOL_VERSION
from invoice_doctor.config import Settings
from invoice_doctor.contracts import build_contract, build_run_summary
from invoice_doctor.diagnostics import (
    PriceInconsistency,
    has_structural_error,
    severity_counts,
    warning_count,
)
from invoice_doctor.numeric import format_number
from invoice_doctor.validator import ValidationResult, validate_text
from invoice_doctor.views import inconsistent_records

VERDICT_CLEAN = "clean"
VERDICT_NEEDS_REVIEW = "needs_review"
VERDICT_INVALID = "invalid"

SEVERITY_HEADINGS = {
    "critical": "Critical",
    "warning": "Warning",
    "info": "Info",
}


def verdict_for(result: ValidationResult) -> str:
    if has_structural_error(result.diagnostics):
        return VERDICT_INVALID
    if result.diagnostics:
        return VERDICT_NEEDS_REVIEW
    return VERDICT_CLEAN


def build_summary(result: ValidationResult) -> dict[str, Any]:
    return {
        "verdict": verdict_for(result),
        "record_count": len(result.records),
        "diagnostic_count": len(result.diagnostics),
        "warning_count": warning_count(result.diagnostics),
        "row_error_count": len(result.row_errors),
        "price_inconsistency_count": len(result.price_findings),
        "significant_price_inconsistency_count": sum(1 for item in result.price_findings if item.significant),
        "flagged_record_count": len(inconsistent_records(result.records)),
        "severity_counts": severity_counts(result.diagnostics),
    }


def render_text_report(report: dict[str, Any]) -> str:
    summary = report["summary"]
    lines = [
        "invoice-doctor report",
        f"Input: {report['run_summary'].get('input') or '[text]'}",
        f"Verdict: {summary['verdict']}",
        f"Records: {summary['record_count']}",
        f"Warnings: {summary['warning_count']}",
    ]
    for warning in report["run_summary"]["warnings"]:
        lines.append(f"Note: {warning}")

    grouped: dict[str, list[dict[str, Any]]] = {}
    for item in report["diagnostics"]:
        grouped.setdefault(item["severity"], []).append(item)
    for severity, heading in SEVERITY_HEADINGS.items():
        items = grouped.get(severity)
        if not items:
            continue
        lines.append("")
        lines.append(f"{heading} ({len(items)})")
        for item in items:
            if item["kind"] == PriceInconsistency.kind:
                lines.append(f"- {item['message']}")
            elif item["row"] > 0:
                lines.append(f"- Row {item['row']}: {item['message']}")
            else:
                lines.append(f"- {item['message']}")

    flagged = [record for record in report["records"] if record["has_price_inconsistency"]]
    if flagged:
        lines.append("")
        lines.append("Price inconsistency recap")
        for number, record in enumerate(flagged, start=1):
            lines.append(
                f"{number}. {record['request_date']} | {record['customer']} | {record['item']} | "
                f"{format_number(record['quantity'])} {record['unit']} @ {format_number(record['price'])}"
            )
    return "\n".join(lines) + "\n"


def build_report_from_result(
    result: ValidationResult,
    *,
    source: str | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    contract = build_contract("invoice_doctor.report")
    summary = build_summary(result)
    report: dict[str, Any] = {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "run_summary": build_run_summary(
            tool="invoice-doctor",
            command="report",
            source=source,
            status="failed" if summary["verdict"] == VERDICT_INVALID else "ok",
            metrics={
                "records": summary["record_count"],
                "diagnostics": summary["diagnostic_count"],
                "warnings": summary["warning_count"],
            },
            warnings=warnings,
        ),
        "summary": summary,
        "diagnostics": [item.to_dict() for item in result.diagnostics],
        "records": [record.to_dict() for record in result.records],
    }
    report["text_report"] = render_text_report(report)
    return report


def build_report(
    text: str,
    *,
    source: str | None = None,
    settings: Settings | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    settings = settings or Settings()
    result = validate_text(text, contract=settings.contract, threshold=settings.significance_threshold)
    return build_report_from_result(result, source=source, warnings=warnings)
