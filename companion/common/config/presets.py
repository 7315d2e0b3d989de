"""Pipeline configuration presets for the companion service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from companion.common.logging import get_logger

from .base import (
    ConfigError,
    DispatchConfig,
    InferenceConfig,
    LoggingConfig,
    ServiceConfig,
    TextSourceConfig,
)
from .behavior import BehaviorConfig

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdditionalSource:
    """An extra text file monitored alongside the primary source."""

    name: str
    path: str
    format: str = "auto"
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AdditionalSource:
        if not data.get("name") or not data.get("path"):
            raise ConfigError("Additional sources require a name and a path")
        source_format = str(data.get("format", "auto")).lower()
        if source_format not in ("auto", "srt", "lines"):
            raise ConfigError(
                f"Additional source '{data['name']}' has unknown format '{source_format}'"
            )
        return cls(
            name=data["name"],
            path=data["path"],
            format=source_format,
            enabled=data.get("enabled", True),
        )


class PipelineConfig:
    """Complete configuration for the companion pipeline."""

    def __init__(
        self,
        additional_sources: list[dict[str, Any]] | None = None,
        behavior: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.logging = LoggingConfig(**kwargs.get("logging", {}))
        self.service = ServiceConfig(**kwargs.get("service", {}))
        self.text = TextSourceConfig(**kwargs.get("text", {}))
        self.inference = InferenceConfig(**kwargs.get("inference", {}))
        self.dispatch = DispatchConfig(**kwargs.get("dispatch", {}))
        self.additional_sources = [
            AdditionalSource.from_dict(item) for item in additional_sources or []
        ]
        self.behavior = BehaviorConfig.from_dict(behavior or {})

        errors = self.behavior.validate()
        if errors:
            raise ConfigError("; ".join(errors))
        for problem in self.behavior.pattern_problems():
            logger.warning("config.behavior_pattern_invalid", problem=problem)

    def to_dict(self) -> dict[str, Any]:
        return {
            "logging": self.logging.to_dict(),
            "service": self.service.to_dict(),
            "text": self.text.to_dict(),
            "inference": self.inference.to_dict(),
            "dispatch": self.dispatch.to_dict(),
            "additional_sources": [
                {
                    "name": s.name,
                    "path": s.path,
                    "format": s.format,
                    "enabled": s.enabled,
                }
                for s in self.additional_sources
            ],
            "behavior": self.behavior.to_dict(),
        }


def get_pipeline_preset() -> dict[str, Any]:
    """Get the default configuration preset for the pipeline.

    Environment variables still override any scalar value in the preset.
    """
    return {
        "logging": {"level": "INFO", "json_logs": True, "service_name": "companion"},
        "service": {"port": 5000, "host": "127.0.0.1"},
        "text": {
            "path": "captions.srt",
            "format": "auto",
            "name": "LocalVoice",
            "poll_interval_ms": 500,
            "buffer_size": 4096,
        },
        "inference": {
            "base_url": "http://localhost:11434",
            "model": "llama3.2",
            "timeout_seconds": 60.0,
            "health_cooldown_seconds": 30.0,
            "use_chat_mode": True,
            "max_chat_history": 10,
        },
        "dispatch": {
            "interval_ms": 1000,
            "max_unit_age_seconds": 0.0,
            "actor_base_url": "http://localhost:5002",
            "actor_timeout_seconds": 10.0,
            "actor_max_retries": 2,
            "default_action": "say",
        },
        "additional_sources": [],
        "behavior": {
            "prompt": {
                "system_prompt": (
                    "You are a friendly desktop companion. Reply to what you hear "
                    "in one or two short sentences."
                ),
                "user_prompt_template": "{input}",
            },
            "personalities": [
                {
                    "name": "default",
                    "display_name": "Companion",
                    "description": "Cheerful and brief",
                    "system_prompt": "",
                },
            ],
            "active_personality": "default",
            "behavior_rules": [
                {
                    "name": "greeting",
                    "description": "Answer greetings without waiting for the model",
                    "trigger_pattern": r"^\s*(hello|hi|hey)\b",
                    "override_text": "Hello! Nice to see you.",
                },
            ],
            "action_mappings": [
                {
                    "pattern": r"\b(dance|jump|wave)\b",
                    "action_type": "animate",
                    "default_parameters": {"animation": "bounce"},
                },
                {
                    "pattern": r"^\s*(note|show):",
                    "action_type": "display",
                    "default_parameters": {},
                },
            ],
        },
    }


def load_pipeline_config(**overrides: Any) -> PipelineConfig:
    """Build a PipelineConfig from the preset, with top-level sections replaced by overrides."""
    preset = get_pipeline_preset()
    preset.update(overrides)
    return PipelineConfig(**preset)


__all__ = [
    "AdditionalSource",
    "PipelineConfig",
    "get_pipeline_preset",
    "load_pipeline_config",
]
