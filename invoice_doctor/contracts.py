"""Shared versioned contracts for invoice-doctor outputs."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

CONTRACT_VERSIONS = {
    "invoice_doctor.validate": "1.0.0",
    "invoice_doctor.report": "1.0.0",
}

GENERATED_AT_ENV = "INVOICE_DOCTOR_GENERATED_AT"


def utc_now_iso() -> str:
    override = os.environ.get(GENERATED_AT_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    source: str | None,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input": source,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
