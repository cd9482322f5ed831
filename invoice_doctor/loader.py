#!/usr/bin/env python3
"""
loader.py - reads a local CSV export into text for the validator.

Public API:
    result = load_text("path/to/export.csv")
    text   = result["text"]

Result dict keys:
    text              - decoded text (always present)
    detected_encoding - encoding name used as the preferred fallback
    encoding_info     - full dict: detected, confidence, is_utf8, suspicious_chars
    size_bytes        - raw file size
    warnings          - list of warning strings
"""

from __future__ import annotations

from pathlib import Path

import chardet

TEXT_FORMATS = {".csv", ".txt"}
UTF8_BOM = b"\xef\xbb\xbf"


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_encoding_info(raw: bytes) -> dict:
    """Detect encoding from raw bytes and list lines that are not valid UTF-8."""
    result = chardet.detect(raw)
    detected = result.get("encoding") or "unknown"
    confidence = round(result.get("confidence") or 0.0, 2)

    suspicious: list[str] = []
    for row_idx, line in enumerate(raw.split(b"\n")[:100], start=1):
        try:
            line.decode("utf-8")
        except UnicodeDecodeError as e:
            bad_byte = line[e.start : e.end]
            suspicious.append(f"row {row_idx}: byte {bad_byte!r} at position {e.start}")

    is_utf8 = not suspicious

    return {
        "detected": detected,
        "confidence": confidence,
        "is_utf8": is_utf8,
        "suspicious_chars": suspicious[:10],
    }


def decode_line(raw_line: bytes, candidates: tuple[str, ...]) -> str:
    for enc in candidates:
        try:
            return raw_line.decode(enc)
        except (LookupError, UnicodeDecodeError):
            continue
    return raw_line.decode("cp1252", errors="replace")


def read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode an export one line at a time so a few bad bytes only affect their
    own line. UTF-8 is tried first, then the detected encoding, then latin-1;
    cp1252 with replacement characters is the last resort. A UTF-8 BOM and
    NUL bytes are dropped.
    """
    if raw.startswith(UTF8_BOM):
        raw = raw[len(UTF8_BOM):]
    candidates = tuple(
        dict.fromkeys(enc for enc in ("utf-8", preferred_encoding, "latin-1") if enc and enc != "unknown")
    )
    return "\n".join(
        decode_line(raw_line, candidates).replace("\x00", "") for raw_line in raw.split(b"\n")
    )


def decode_bytes(raw: bytes) -> dict:
    enc_info = detect_encoding_info(raw)
    enc = enc_info["detected"] if enc_info["detected"] != "unknown" else "utf-8"
    warnings: list[str] = []
    if not enc_info["is_utf8"]:
        warnings.append(
            f"Input is not valid UTF-8 (detected {enc_info['detected']}, "
            f"confidence {enc_info['confidence']}); decoded with fallbacks."
        )
    return {
        "text": read_text_safely(raw, enc),
        "detected_encoding": enc,
        "encoding_info": enc_info,
        "size_bytes": len(raw),
        "warnings": warnings,
    }


def load_text(path: Path | str) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    suffix = path.suffix.lower()
    result = decode_bytes(path.read_bytes())
    if suffix not in TEXT_FORMATS:
        result["warnings"].append(
            f"Unexpected file extension '{suffix or '[missing extension]'}'; treating it as comma-delimited text."
        )
    result["path"] = str(path)
    return result
