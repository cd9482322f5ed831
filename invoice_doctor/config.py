"""
Settings for invoice-doctor.

Priority, lowest to highest: built-in defaults, a JSON config file, then
INVOICE_DOCTOR_* environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from invoice_doctor.schema import DEFAULT_HEADER_LABELS, HeaderContract
from invoice_doctor.validator import SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD

DEFAULT_PAGE_SIZE = 10
DEFAULT_SAMPLE_LIMIT = 50
SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}

ENV_SIGNIFICANCE_THRESHOLD = "INVOICE_DOCTOR_SIGNIFICANCE_THRESHOLD"
ENV_PAGE_SIZE = "INVOICE_DOCTOR_PAGE_SIZE"
ENV_SAMPLE_LIMIT = "INVOICE_DOCTOR_SAMPLE_LIMIT"


class ConfigError(ValueError):
    pass


@dataclass
class Settings:
    significance_threshold: float = SIGNIFICANT_PRICE_DIFFERENCE_THRESHOLD
    page_size: int = DEFAULT_PAGE_SIZE
    sample_limit: int = DEFAULT_SAMPLE_LIMIT
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def contract(self) -> HeaderContract:
        return HeaderContract(self.headers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "significance_threshold": self.significance_threshold,
            "page_size": self.page_size,
            "sample_limit": self.sample_limit,
            "headers": dict(self.headers),
        }


def starter_config() -> dict[str, Any]:
    payload = Settings().to_dict()
    payload["headers"] = dict(DEFAULT_HEADER_LABELS)
    return payload


def _as_float(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if number < 0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")
    return number


def _as_positive_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if number < 1:
        raise ConfigError(f"{name} must be at least 1, got {value!r}")
    return number


def _apply(settings: Settings, payload: Mapping[str, Any]) -> None:
    unknown = set(payload) - {"significance_threshold", "page_size", "sample_limit", "headers"}
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    if "significance_threshold" in payload:
        settings.significance_threshold = _as_float("significance_threshold", payload["significance_threshold"])
    if "page_size" in payload:
        settings.page_size = _as_positive_int("page_size", payload["page_size"])
    if "sample_limit" in payload:
        settings.sample_limit = _as_positive_int("sample_limit", payload["sample_limit"])
    if "headers" in payload:
        headers = payload["headers"]
        if not isinstance(headers, dict):
            raise ConfigError("headers must be an object mapping field names to header labels")
        unknown_fields = set(headers) - set(DEFAULT_HEADER_LABELS)
        if unknown_fields:
            raise ConfigError(f"Unknown header fields: {', '.join(sorted(unknown_fields))}")
        settings.headers = {key: str(value) for key, value in headers.items()}


def read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ConfigError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Could not read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a JSON object.")
    return payload


def load_settings(path: Path | str | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    environ = os.environ if environ is None else environ
    settings = Settings()
    if path is not None:
        _apply(settings, read_config_file(Path(path)))

    overrides: dict[str, Any] = {}
    if environ.get(ENV_SIGNIFICANCE_THRESHOLD):
        overrides["significance_threshold"] = environ[ENV_SIGNIFICANCE_THRESHOLD]
    if environ.get(ENV_PAGE_SIZE):
        overrides["page_size"] = environ[ENV_PAGE_SIZE]
    if environ.get(ENV_SAMPLE_LIMIT):
        overrides["sample_limit"] = environ[ENV_SAMPLE_LIMIT]
    _apply(settings, overrides)
    return settings
