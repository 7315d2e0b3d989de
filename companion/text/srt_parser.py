"""Best-effort parser for SRT caption content.

The parser works line by line and never raises: the source file is written
concurrently by the transcription process, so a trailing block may be
half-written at any moment. A block with no text yet is always left out;
callers that tail the file also pass ``complete_only`` so a trailing block
is held back until a blank line or the next index line closes it.
"""

from __future__ import annotations

import re
from datetime import timedelta

from .models import Caption

_TIMESTAMP_RE = re.compile(
    r"(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})\s*-->\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})"
)
_INDEX_RE = re.compile(r"^\d+$")


def _to_timedelta(hours: str, minutes: str, seconds: str, millis: str) -> timedelta:
    return timedelta(
        hours=int(hours),
        minutes=int(minutes),
        seconds=int(seconds),
        milliseconds=int(millis),
    )


def parse_srt_content(content: str, *, complete_only: bool = False) -> list[Caption]:
    """Parse SRT text into captions, preserving the order they appear in.

    Blocks with no index or no text before the next index line are dropped.
    Multi-line caption text is joined with a single space. With
    ``complete_only`` the last block is returned only when a blank line
    follows its text.
    """
    captions: list[Caption] = []
    if not content:
        return captions

    index: int | None = None
    start = end = timedelta(0)
    text_lines: list[str] = []
    closed = False

    def flush() -> None:
        if index is not None and text_lines:
            captions.append(
                Caption(index=index, start=start, end=end, text=" ".join(text_lines))
            )

    for raw_line in content.splitlines():
        line = raw_line.strip().lstrip("\ufeff")
        if not line:
            closed = bool(text_lines)
            continue

        if _INDEX_RE.match(line):
            flush()
            index = int(line)
            start = end = timedelta(0)
            text_lines = []
            continue

        if index is None:
            # text before any index line
            continue

        if not text_lines and "-->" in line:
            # garbled time ranges leave zero durations
            match = _TIMESTAMP_RE.search(line)
            if match:
                start = _to_timedelta(*match.groups()[:4])
                end = _to_timedelta(*match.groups()[4:])
            continue

        text_lines.append(line)
        closed = False

    if closed or not complete_only:
        flush()
    return captions


__all__ = ["parse_srt_content"]
