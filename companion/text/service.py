"""Text stream service: the buffer plus one monitor per configured source."""

from __future__ import annotations

import asyncio
from typing import Any

from companion.common.config import AdditionalSource, TextSourceConfig
from companion.common.logging import get_logger

from .buffer import TextBuffer
from .models import TextUnit
from .monitor import TextSourceMonitor

logger = get_logger(__name__, service_name="text")


class TextStreamService:
    """Owns the text buffer and the monitors that feed it."""

    def __init__(
        self,
        config: TextSourceConfig,
        additional_sources: list[AdditionalSource] | None = None,
    ) -> None:
        self.buffer = TextBuffer(config.buffer_size)
        self.monitors: list[TextSourceMonitor] = [
            TextSourceMonitor(
                config.path,
                self.buffer,
                source_name=config.name,
                source_format=config.format,
                poll_interval_ms=config.poll_interval_ms,
            )
        ]
        for source in additional_sources or []:
            if not source.enabled:
                logger.info("text_service.source_disabled", source=source.name)
                continue
            self.monitors.append(
                TextSourceMonitor(
                    source.path,
                    self.buffer,
                    source_name=source.name,
                    source_format=source.format,
                    poll_interval_ms=config.poll_interval_ms,
                )
            )

    def start_tasks(self, stop_event: asyncio.Event) -> list[asyncio.Task[None]]:
        """Start one polling task per monitor."""
        tasks = [
            asyncio.create_task(
                monitor.run(stop_event), name=f"text-monitor:{monitor.source_name}"
            )
            for monitor in self.monitors
        ]
        logger.info(
            "text_service.started",
            sources=[m.source_name for m in self.monitors],
            buffer_capacity=self.buffer.capacity,
        )
        return tasks

    def get_latest_text(self) -> TextUnit | None:
        """Pop the oldest buffered unit, or None when the buffer is empty."""
        return self.buffer.pop_oldest()

    def get_all_text(self) -> list[TextUnit]:
        return self.buffer.snapshot()

    def get_buffer_count(self) -> int:
        return len(self.buffer)

    def status(self) -> dict[str, Any]:
        return {
            "buffer_count": len(self.buffer),
            "buffer_capacity": self.buffer.capacity,
            "evicted": self.buffer.evicted_count,
            "sources": [monitor.status() for monitor in self.monitors],
        }


__all__ = ["TextStreamService"]
