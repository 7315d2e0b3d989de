"""Tests for the text stream service."""

import asyncio

import pytest

from companion.common.config import AdditionalSource, TextSourceConfig
from companion.text.models import TextUnit
from companion.text.service import TextStreamService


@pytest.fixture
def text_config(tmp_path) -> TextSourceConfig:
    return TextSourceConfig(
        path=str(tmp_path / "captions.srt"),
        name="LocalVoice",
        poll_interval_ms=10,
        buffer_size=3,
    )


class TestTextStreamService:
    """Test monitor wiring and buffer accessors."""

    @pytest.mark.unit
    def test_disabled_sources_are_not_monitored(self, tmp_path, text_config):
        service = TextStreamService(
            text_config,
            [
                AdditionalSource(name="Mic2", path=str(tmp_path / "mic2.txt")),
                AdditionalSource(
                    name="Off", path=str(tmp_path / "off.txt"), enabled=False
                ),
            ],
        )

        assert [m.source_name for m in service.monitors] == ["LocalVoice", "Mic2"]

    @pytest.mark.unit
    def test_accessors(self, text_config):
        service = TextStreamService(text_config)
        for text in "ABCD":
            service.buffer.push(TextUnit(text=text, source="LocalVoice"))

        assert service.get_buffer_count() == 3
        assert [u.text for u in service.get_all_text()] == ["B", "C", "D"]
        assert service.get_latest_text().text == "B"

        status = service.status()
        assert status["buffer_count"] == 2
        assert status["buffer_capacity"] == 3
        assert status["evicted"] == 1
        assert status["sources"][0]["name"] == "LocalVoice"

    @pytest.mark.unit
    def test_empty_buffer_returns_none(self, text_config):
        assert TextStreamService(text_config).get_latest_text() is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_sources_feed_one_buffer(self, tmp_path, text_config):
        extra_path = tmp_path / "mic2.txt"
        service = TextStreamService(
            text_config, [AdditionalSource(name="Mic2", path=str(extra_path))]
        )
        for monitor in service.monitors:
            await monitor.start()

        stop_event = asyncio.Event()
        tasks = service.start_tasks(stop_event)
        assert sorted(t.get_name() for t in tasks) == [
            "text-monitor:LocalVoice",
            "text-monitor:Mic2",
        ]

        with extra_path.open("a", encoding="utf-8") as handle:
            handle.write("from the second mic\n")
        for _ in range(100):
            if service.get_buffer_count():
                break
            await asyncio.sleep(0.01)

        stop_event.set()
        await asyncio.gather(*tasks)

        unit = service.get_latest_text()
        assert unit.text == "from the second mic"
        assert unit.source == "Mic2"
