"""Polling monitor that tails a transcription file into the text buffer.

The monitor cycles ``Idle -> Polling -> (Reading | Reset) -> Polling`` until
it is stopped. Each tick compares the file size with the last size seen:

* growth in line mode reads only the appended byte range;
* growth in SRT mode re-parses the whole file (captions may be rewritten in
  place) and emits only closed captions above the dedup watermark;
* shrinkage is treated as a truncation/rotation and the next tick starts
  again from byte 0.

A missing file is recreated empty and polling carries on.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from companion.common.logging import get_logger

from .buffer import TextBuffer
from .models import SourceFormat, TextUnit
from .srt_parser import parse_srt_content


class TextSourceMonitor:
    """Watches one growable/truncatable text file and pushes new units."""

    def __init__(
        self,
        path: str | Path,
        buffer: TextBuffer,
        *,
        source_name: str,
        source_format: str = "auto",
        poll_interval_ms: int = 500,
    ) -> None:
        self._path = Path(path)
        self._buffer = buffer
        self._source_name = source_name
        self._format = SourceFormat.resolve(source_format, self._path)
        self._poll_interval = poll_interval_ms / 1000.0

        self._position = 0
        self._last_size = 0
        self._pending = b""
        self._watermark: int | None = None
        self._emitted = 0
        self._started = False
        self._logger = get_logger(__name__).bind(source=source_name)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def format(self) -> SourceFormat:
        return self._format

    @property
    def watermark(self) -> int | None:
        """Highest caption index emitted or seeded so far (SRT only)."""
        return self._watermark

    @property
    def position(self) -> int:
        return self._position

    @property
    def emitted_count(self) -> int:
        return self._emitted

    def status(self) -> dict[str, Any]:
        return {
            "name": self._source_name,
            "path": str(self._path),
            "format": self._format.value,
            "position": self._position,
            "watermark": self._watermark,
            "emitted": self._emitted,
        }

    async def start(self) -> None:
        """Seed the read state so existing file content is not replayed."""
        await asyncio.to_thread(self._initialize)

    async def poll_once(self) -> int:
        """Run a single polling tick and return the number of units emitted."""
        if not self._started:
            await self.start()
        return await asyncio.to_thread(self._poll)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Poll until ``stop_event`` is set, surviving any per-tick failure."""
        self._logger.info(
            "text_monitor.started",
            path=str(self._path),
            format=self._format.value,
            poll_interval_ms=int(self._poll_interval * 1000),
        )
        while not stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as exc:
                self._logger.error(
                    "text_monitor.poll_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._poll_interval)
            except asyncio.TimeoutError:
                pass
        self._logger.info("text_monitor.stopped", emitted=self._emitted)

    def _initialize(self) -> None:
        self._ensure_exists()
        size = self._path.stat().st_size

        if self._format is SourceFormat.SRT and size:
            captions = parse_srt_content(self._read_text())
            if captions:
                self._watermark = max(c.index for c in captions)

        self._position = size
        self._last_size = size
        self._pending = b""
        self._started = True
        self._logger.info(
            "text_monitor.seeded",
            size=size,
            watermark=self._watermark,
        )

    def _ensure_exists(self) -> bool:
        """Create the file if it is missing; returns True when it had to be created."""
        if self._path.exists():
            return False
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch()
        self._logger.warning("text_monitor.source_recreated", path=str(self._path))
        return True

    def _reset(self) -> None:
        self._position = 0
        self._last_size = 0
        self._pending = b""

    def _poll(self) -> int:
        if self._ensure_exists():
            self._reset()
            return 0

        size = self._path.stat().st_size
        if size < self._last_size:
            self._logger.info(
                "text_monitor.source_truncated",
                previous_size=self._last_size,
                size=size,
            )
            self._reset()
            return 0
        if size == self._last_size:
            return 0

        if self._format is SourceFormat.SRT:
            emitted = self._read_captions()
        else:
            emitted = self._read_lines(size)

        self._last_size = size
        self._position = size
        self._emitted += emitted
        return emitted

    def _read_text(self) -> str:
        return self._path.read_text(encoding="utf-8", errors="replace")

    def _read_captions(self) -> int:
        emitted = 0
        for caption in parse_srt_content(self._read_text(), complete_only=True):
            if self._watermark is not None and caption.index <= self._watermark:
                continue
            self._watermark = caption.index
            self._buffer.push(
                TextUnit(
                    text=caption.text,
                    source=self._source_name,
                    metadata={
                        "format": SourceFormat.SRT.value,
                        "index": caption.index,
                        "start_seconds": caption.start.total_seconds(),
                        "end_seconds": caption.end.total_seconds(),
                    },
                )
            )
            emitted += 1
            self._logger.info(
                "text_monitor.caption_emitted",
                index=caption.index,
                text_length=len(caption.text),
            )
        return emitted

    def _read_lines(self, size: int) -> int:
        with self._path.open("rb") as handle:
            handle.seek(self._position)
            data = self._pending + handle.read(size - self._position)

        # only newline-terminated lines are complete
        complete, newline, remainder = data.rpartition(b"\n")
        if not newline:
            self._pending = data
            return 0
        self._pending = remainder

        emitted = 0
        for line in complete.decode("utf-8", errors="replace").splitlines():
            unit = self._parse_line(line)
            if unit is None:
                continue
            self._buffer.push(unit)
            emitted += 1
        if emitted:
            self._logger.info("text_monitor.lines_emitted", count=emitted)
        return emitted

    def _parse_line(self, line: str) -> TextUnit | None:
        stripped = line.strip()
        if not stripped:
            return None

        if stripped.startswith("{"):
            try:
                payload = json.loads(stripped)
            except json.JSONDecodeError:
                self._logger.debug("text_monitor.line_not_json", line_length=len(stripped))
            else:
                if isinstance(payload, dict):
                    text = payload.get("text")
                    if not isinstance(text, str) or not text.strip():
                        self._logger.debug("text_monitor.json_line_without_text")
                        return None
                    metadata = {k: v for k, v in payload.items() if k != "text"}
                    # upstream fields win over the format tag
                    metadata.setdefault("format", "json")
                    return TextUnit(
                        text=text.strip(), source=self._source_name, metadata=metadata
                    )

        return TextUnit(
            text=stripped, source=self._source_name, metadata={"format": "text"}
        )


__all__ = ["TextSourceMonitor"]
