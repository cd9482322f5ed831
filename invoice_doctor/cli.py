from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from invoice_doctor import __version__ as TOOL_VERSION
from invoice_doctor.config import ConfigError, Settings, load_settings, starter_config
from invoice_doctor.contracts import build_contract
from invoice_doctor.diagnostics import ISSUE_DEFINITIONS
from invoice_doctor.exporter import to_csv, workbook_bytes
from invoice_doctor.loader import load_text
from invoice_doctor.report import VERDICT_CLEAN, VERDICT_INVALID, build_report_from_result, build_summary
from invoice_doctor.validator import ValidationResult, validate_text
from invoice_doctor.views import prompt_sample

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_VALIDATE_ISSUES = 3
EXIT_VALIDATE_FAILED = 5


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class InvoiceDoctorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        sys.stdout.write(json_dumps(payload) + "\n")


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, ConfigError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def exit_code_for_verdict(verdict: str) -> int:
    if verdict == VERDICT_INVALID:
        return EXIT_VALIDATE_FAILED
    if verdict == VERDICT_CLEAN:
        return EXIT_SUCCESS
    return EXIT_VALIDATE_ISSUES


def settings_from_args(args: argparse.Namespace) -> Settings:
    return load_settings(getattr(args, "config", None))


def run_validation(args: argparse.Namespace) -> tuple[dict[str, Any], ValidationResult, Settings]:
    input_path = Path(args.input)
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    settings = settings_from_args(args)
    loaded = load_text(input_path)
    if getattr(args, "verbose", False):
        emit_human(f"Decoded {loaded['size_bytes']} bytes as {loaded['detected_encoding']}")
    result = validate_text(
        loaded["text"],
        contract=settings.contract,
        threshold=settings.significance_threshold,
    )
    return loaded, result, settings


def render_validate_text(payload: dict[str, Any]) -> str:
    summary = payload["summary"]
    lines = [
        "invoice-doctor validate",
        f"Input: {payload['input']}",
        f"Verdict: {summary['verdict']}",
        f"Records: {summary['record_count']}",
        f"Row errors: {summary['row_error_count']}",
        f"Price inconsistencies: {summary['price_inconsistency_count']} "
        f"({summary['significant_price_inconsistency_count']} significant)",
    ]
    for item in payload["diagnostics"]:
        prefix = f"Row {item['row']}: " if item.get("row") else ""
        lines.append(f"- [{item['severity']}] {prefix}{item['message']}")
    for warning in payload["warnings"]:
        lines.append(f"Warning: {warning}")
    return "\n".join(lines) + "\n"


def run_validate(args: argparse.Namespace) -> int:
    try:
        loaded, result, _ = run_validation(args)
        summary = build_summary(result)
        payload = {
            "tool": "invoice-doctor",
            "command": "validate",
            "version": TOOL_VERSION,
            "contract": build_contract("invoice_doctor.validate"),
            "input": str(args.input),
            "valid": summary["verdict"] == VERDICT_CLEAN,
            "summary": summary,
            "diagnostics": [item.to_dict() for item in result.diagnostics],
            "warnings": loaded["warnings"],
        }
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_validate_text(payload).rstrip(), quiet=args.quiet)
        return exit_code_for_verdict(summary["verdict"])
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_report(args: argparse.Namespace) -> int:
    try:
        loaded, result, _ = run_validation(args)
        report = build_report_from_result(result, source=str(args.input), warnings=loaded["warnings"])
        if args.json or args.format == "json":
            if args.output:
                write_text(Path(args.output), json_dumps(report))
                emit_human(f"Report written: {args.output}", quiet=args.quiet)
            if args.json or not args.output:
                maybe_emit_json_stdout(report, True)
        else:
            if args.output:
                write_text(Path(args.output), report["text_report"])
            emit_human(report["text_report"].rstrip(), quiet=args.quiet)
            if args.output:
                emit_human(f"Report written: {args.output}", quiet=args.quiet)
        return exit_code_for_verdict(report["summary"]["verdict"])
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_export(args: argparse.Namespace) -> int:
    try:
        if args.format == "xlsx" and not args.output:
            raise CliError("--output is required for xlsx exports.", EXIT_COMMAND_ERROR)
        _, result, settings = run_validation(args)
        verdict = build_summary(result)["verdict"]
        if args.format == "xlsx":
            output_path = Path(args.output)
            ensure_parent(output_path)
            output_path.write_bytes(workbook_bytes(result.records, result.diagnostics, settings.contract))
            emit_human(f"Workbook written: {output_path}", quiet=args.quiet)
        else:
            payload = to_csv(result.records, settings.contract) + "\n"
            if args.output:
                write_text(Path(args.output), payload)
                emit_human(f"CSV written: {args.output}", quiet=args.quiet)
            else:
                sys.stdout.write(payload)
        emit_human(f"Exported {len(result.records)} records.", quiet=args.quiet)
        return exit_code_for_verdict(verdict)
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_sample(args: argparse.Namespace) -> int:
    try:
        _, result, settings = run_validation(args)
        limit = args.limit if args.limit is not None else settings.sample_limit
        if limit < 1:
            raise CliError("--limit must be at least 1.", EXIT_COMMAND_ERROR)
        sys.stdout.write(prompt_sample(result.records, limit) + "\n")
        if build_summary(result)["verdict"] == VERDICT_INVALID:
            return EXIT_VALIDATE_FAILED
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_explain(args: argparse.Namespace) -> int:
    rule = ISSUE_DEFINITIONS.get(args.rule_id)
    if rule is None:
        eprint(f"Unknown rule id: {args.rule_id}. Known: {', '.join(sorted(ISSUE_DEFINITIONS))}")
        return EXIT_COMMAND_ERROR
    payload = {"rule_id": args.rule_id, **rule}
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(f"{args.rule_id} ({rule['severity']})")
        print(rule["description"])
        print(f"Evidence: {rule['evidence']}")
    return EXIT_SUCCESS


def run_config(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if path.exists() and not args.force:
        eprint(f"Config already exists: {path} (use --force to overwrite)")
        return EXIT_COMMAND_ERROR
    write_text(path, json_dumps(starter_config()) + "\n")
    eprint(f"Config written: {path}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = InvoiceDoctorArgumentParser(prog="invoice-doctor", description="Validate spreadsheet-exported sales invoices.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a CSV export and list diagnostics.")
    validate.add_argument("input", help="Input CSV path")
    validate.add_argument("--config", help="JSON config path")
    validate.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    validate.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    validate.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    report = subparsers.add_parser("report", help="Generate a human-readable or JSON report.")
    report.add_argument("input", help="Input CSV path")
    report.add_argument("--config", help="JSON config path")
    report.add_argument("--output", help="Explicit report output path")
    report.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    report.add_argument("--format", choices=["text", "json"], default="text", help="Output format when --json is not used")
    report.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    report.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    export = subparsers.add_parser("export", help="Export validated records with warning labels.")
    export.add_argument("input", help="Input CSV path")
    export.add_argument("--config", help="JSON config path")
    export.add_argument("--format", choices=["csv", "xlsx"], default="csv", help="Export format")
    export.add_argument("--output", help="Output path (required for xlsx; csv defaults to stdout)")
    export.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    export.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    sample = subparsers.add_parser("sample", help="Print the compact record sample used for question answering.")
    sample.add_argument("input", help="Input CSV path")
    sample.add_argument("--config", help="JSON config path")
    sample.add_argument("--limit", type=int, help="Records to include (defaults to the sample_limit setting)")
    sample.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    sample.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    explain = subparsers.add_parser("explain", help="Explain a stable rule id.")
    explain.add_argument("rule_id", help="Rule identifier")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="invoice-doctor.json", help="Config output path")
    config_init.add_argument("--force", action="store_true", help="Overwrite an existing file")

    subparsers.add_parser("version", help="Print version")
    return parser


COMMANDS = {
    "validate": run_validate,
    "report": run_report,
    "export": run_export,
    "sample": run_sample,
    "explain": run_explain,
    "config": run_config,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except CliError as exc:
        eprint(str(exc))
        return exc.code
    if args.command == "version":
        print(TOOL_VERSION)
        return EXIT_SUCCESS
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
