"""Data types shared by the text ingestion components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any


class SourceFormat(Enum):
    """Shape of an upstream text source."""

    SRT = "srt"
    LINES = "lines"  # one JSON object or plain-text line per unit

    @classmethod
    def resolve(cls, value: str, path: str | Path) -> SourceFormat:
        """Resolve a configured format, where ``auto`` is decided by file suffix."""
        normalized = (value or "auto").lower()
        if normalized == "auto":
            return cls.SRT if Path(path).suffix.lower() == ".srt" else cls.LINES
        return cls(normalized)


@dataclass(frozen=True)
class Caption:
    """One parsed subtitle block."""

    index: int
    start: timedelta
    end: timedelta
    text: str


@dataclass(frozen=True)
class TextUnit:
    """A unit of transcribed text observed on a source."""

    text: str
    source: str
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: MappingProxyType[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        # Freeze whatever mapping the caller passed in
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def age_seconds(self, now: datetime | None = None) -> float:
        current = now or datetime.now(timezone.utc)
        return (current - self.observed_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "source": self.source,
            "observed_at": self.observed_at.isoformat(),
            "metadata": dict(self.metadata),
        }


__all__ = ["Caption", "SourceFormat", "TextUnit"]
