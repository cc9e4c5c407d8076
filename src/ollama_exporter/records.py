"""
Record types for what the Ollama API returns.

Each record has a from_api() constructor that takes the raw JSON object
and fills in "unknown" / 0 for anything missing, so every label we later
derive from it has a defined value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

UNKNOWN = "unknown"

# Ollama emits nanosecond fractions ("...:00.123456789-08:00"); datetime
# only takes up to six digits.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _text(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN
    return str(value)


def _non_negative_int(value: Any) -> int:
    if not value:
        return 0
    return max(0, int(value))


def parse_timestamp(value: str) -> Optional[float]:
    """Parse an ISO-8601 timestamp into Unix seconds, or None if it isn't one."""
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


@dataclass(frozen=True)
class VersionInfo:
    version: str = UNKNOWN

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "VersionInfo":
        return cls(version=_text(raw.get("version")))


@dataclass(frozen=True)
class ModelRecord:
    """One installed model, as listed by /api/tags."""

    name: str
    size_bytes: int = 0
    modified_at: Optional[str] = None

    # From the "details" block
    family: str = UNKNOWN
    format: str = UNKNOWN
    parameter_size: str = UNKNOWN
    quantization_level: str = UNKNOWN
    parent_model: str = UNKNOWN

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "ModelRecord":
        details = raw.get("details") or {}
        return cls(
            name=_text(raw.get("name")),
            size_bytes=_non_negative_int(raw.get("size")),
            modified_at=raw.get("modified_at") or None,
            family=_text(details.get("family")),
            format=_text(details.get("format")),
            parameter_size=_text(details.get("parameter_size")),
            quantization_level=_text(details.get("quantization_level")),
            parent_model=_text(details.get("parent_model")),
        )

    def info_labels(self) -> tuple:
        """Label values for ollama_model_info, in declaration order."""
        return (
            self.name,
            self.family,
            self.format,
            self.parameter_size,
            self.quantization_level,
            self.parent_model,
        )

    def modified_timestamp(self) -> Optional[float]:
        if not self.modified_at:
            return None
        return parse_timestamp(str(self.modified_at))


@dataclass(frozen=True)
class RunningModelRecord:
    """One model currently loaded in memory, as listed by /api/ps."""

    name: str
    vram_bytes: int = 0

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "RunningModelRecord":
        return cls(
            name=_text(raw.get("name")),
            vram_bytes=_non_negative_int(raw.get("size_vram")),
        )
