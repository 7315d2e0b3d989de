"""Core configuration primitives for the companion pipeline.

Each configuration class declares its fields as ``FieldDefinition`` entries.
Values are taken from constructor kwargs first, then overridden by
environment variables, and validated once at construction time. Instances
are read-only afterwards.
"""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class ConfigError(Exception):
    """Base exception for configuration-related errors."""


class ValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, field_name: str, value: Any, message: str) -> None:
        self.field = field_name
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for field '{field_name}': {message}")


class RequiredFieldError(ConfigError):
    """Exception raised when a required field is missing."""

    def __init__(self, field_name: str) -> None:
        self.field = field_name
        super().__init__(f"Required field '{field_name}' is missing")


@dataclass
class FieldDefinition:
    """Definition for a configuration field with validation rules."""

    name: str
    field_type: type[Any]
    default: Any = None
    required: bool = False
    description: str = ""
    validator: Callable[[Any], bool] | None = None
    env_var: str | None = None
    choices: list[Any] | None = None
    min_value: int | float | None = None
    max_value: int | float | None = None
    pattern: str | None = None

    def __post_init__(self) -> None:
        if self.required and self.default is not None:
            raise ValueError(
                f"Field '{self.name}' cannot be both required and have a default value"
            )
        if self.choices and self.default not in self.choices:
            raise ValueError(f"Field '{self.name}' default value not in choices")


class BaseConfig(ABC):
    """Base configuration class with validation and environment loading."""

    def __init__(self, **kwargs: Any) -> None:
        self._values: dict[str, Any] = {}
        self._load_from_kwargs(kwargs)
        self._load_from_environment()
        self._validate()

    def _load_from_kwargs(self, kwargs: dict[str, Any]) -> None:
        for field_def in self.get_field_definitions():
            if field_def.name in kwargs:
                self._values[field_def.name] = kwargs[field_def.name]

    def _load_from_environment(self) -> None:
        """Environment variables override kwargs and defaults."""
        for field_def in self.get_field_definitions():
            if field_def.env_var:
                env_value = os.getenv(field_def.env_var)
                if env_value is not None:
                    self._values[field_def.name] = self._convert_env_value(
                        field_def, env_value
                    )

    def _convert_env_value(self, field_def: FieldDefinition, value: str) -> Any:
        field_type = field_def.field_type
        try:
            if field_type is bool:
                return value.strip().lower() in ("true", "1", "yes", "on")
            if field_type is int:
                return int(value)
            if field_type is float:
                return float(value)
        except ValueError as exc:
            raise ValidationError(
                field_def.name, value, f"Cannot convert to {field_type.__name__}"
            ) from exc
        return value

    def _validate(self) -> None:
        for field_def in self.get_field_definitions():
            value = self._values.get(field_def.name, field_def.default)

            if field_def.required and value is None:
                raise RequiredFieldError(field_def.name)

            if value is not None:
                value = self._validate_field(field_def, value)
            self._values[field_def.name] = value

    def _validate_field(self, field_def: FieldDefinition, value: Any) -> Any:
        """Validate a single field value and return its normalized form."""
        # ints are accepted for float fields
        if field_def.field_type is float and isinstance(value, int) and not isinstance(
            value, bool
        ):
            value = float(value)

        if not isinstance(value, field_def.field_type):
            raise ValidationError(
                field_def.name, value, f"Expected {field_def.field_type.__name__}"
            )

        if field_def.choices:
            if isinstance(value, str):
                for choice in field_def.choices:
                    if isinstance(choice, str) and choice.lower() == value.lower():
                        value = choice
                        break
            if value not in field_def.choices:
                raise ValidationError(
                    field_def.name, value, f"Must be one of {field_def.choices}"
                )

        if field_def.min_value is not None and value < field_def.min_value:
            raise ValidationError(
                field_def.name, value, f"Must be >= {field_def.min_value}"
            )
        if field_def.max_value is not None and value > field_def.max_value:
            raise ValidationError(
                field_def.name, value, f"Must be <= {field_def.max_value}"
            )

        if (
            field_def.pattern
            and isinstance(value, str)
            and not re.match(field_def.pattern, value)
        ):
            raise ValidationError(
                field_def.name, value, f"Must match pattern {field_def.pattern}"
            )

        if field_def.validator and not field_def.validator(value):
            raise ValidationError(field_def.name, value, "Custom validation failed")

        return value

    @classmethod
    @abstractmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        """Get field definitions for this configuration class."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._values:
            return self._values[name]
        raise AttributeError(f"Configuration field '{name}' not found")

    def to_dict(self) -> dict[str, Any]:
        return self._values.copy()


_URL_PATTERN = r"^https?://"


class LoggingConfig(BaseConfig):
    """Logging configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="level",
                field_type=str,
                default="INFO",
                description="Log level",
                env_var="LOG_LEVEL",
                choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            ),
            FieldDefinition(
                name="json_logs",
                field_type=bool,
                default=True,
                description="Use JSON logging format",
                env_var="LOG_JSON",
            ),
            FieldDefinition(
                name="service_name",
                field_type=str,
                default="companion",
                description="Service name for logging",
                env_var="SERVICE_NAME",
            ),
        ]


class ServiceConfig(BaseConfig):
    """Diagnostics HTTP surface configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="port",
                field_type=int,
                default=5000,
                description="Service port",
                env_var="SERVICE_PORT",
                min_value=1024,
                max_value=65535,
            ),
            FieldDefinition(
                name="host",
                field_type=str,
                default="127.0.0.1",
                description="Service host",
                env_var="SERVICE_HOST",
            ),
        ]


class TextSourceConfig(BaseConfig):
    """Primary text source and buffer configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="path",
                field_type=str,
                default="captions.srt",
                description="Path of the transcription file to tail",
                env_var="TEXT_SOURCE_PATH",
            ),
            FieldDefinition(
                name="format",
                field_type=str,
                default="auto",
                description="Source format: srt, lines (JSON or plain text per line), or auto",
                env_var="TEXT_SOURCE_FORMAT",
                choices=["auto", "srt", "lines"],
            ),
            FieldDefinition(
                name="name",
                field_type=str,
                default="LocalVoice",
                description="Source name recorded on every text unit",
                env_var="TEXT_SOURCE_NAME",
            ),
            FieldDefinition(
                name="poll_interval_ms",
                field_type=int,
                default=500,
                description="Interval between file size checks in milliseconds",
                env_var="TEXT_POLL_INTERVAL_MS",
                min_value=10,
                max_value=60000,
            ),
            FieldDefinition(
                name="buffer_size",
                field_type=int,
                default=4096,
                description="Maximum number of text units held in the buffer",
                env_var="TEXT_BUFFER_SIZE",
                min_value=1,
                max_value=1_000_000,
            ),
        ]


class InferenceConfig(BaseConfig):
    """Inference backend (Ollama) configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="base_url",
                field_type=str,
                default="http://localhost:11434",
                description="Base URL of the inference backend",
                env_var="LLM_BASE_URL",
                pattern=_URL_PATTERN,
            ),
            FieldDefinition(
                name="model",
                field_type=str,
                default="llama3.2",
                description="Model identifier to request",
                env_var="LLM_MODEL",
                validator=lambda value: bool(value.strip()),
            ),
            FieldDefinition(
                name="timeout_seconds",
                field_type=float,
                default=60.0,
                description="Per-request timeout in seconds",
                env_var="LLM_TIMEOUT_SECONDS",
                min_value=0.1,
                max_value=600.0,
            ),
            FieldDefinition(
                name="health_cooldown_seconds",
                field_type=float,
                default=30.0,
                description="Minimum time between availability re-checks while unavailable",
                env_var="LLM_HEALTH_COOLDOWN_SECONDS",
                min_value=0.0,
                max_value=3600.0,
            ),
            FieldDefinition(
                name="use_chat_mode",
                field_type=bool,
                default=True,
                description="Use multi-turn chat requests instead of single-turn generate",
                env_var="LLM_USE_CHAT_MODE",
            ),
            FieldDefinition(
                name="max_chat_history",
                field_type=int,
                default=10,
                description="Maximum number of chat turns kept in history",
                env_var="LLM_MAX_CHAT_HISTORY",
                min_value=1,
                max_value=1000,
            ),
        ]


class DispatchConfig(BaseConfig):
    """Dispatch cycle and actor surface configuration."""

    @classmethod
    def get_field_definitions(cls) -> list[FieldDefinition]:
        return [
            FieldDefinition(
                name="interval_ms",
                field_type=int,
                default=1000,
                description="Minimum spacing between dispatch ticks in milliseconds",
                env_var="DISPATCH_INTERVAL_MS",
                min_value=10,
                max_value=600000,
            ),
            FieldDefinition(
                name="max_unit_age_seconds",
                field_type=float,
                default=0.0,
                description="Drop text units older than this before inference (0 disables)",
                env_var="DISPATCH_MAX_UNIT_AGE_SECONDS",
                min_value=0.0,
            ),
            FieldDefinition(
                name="actor_base_url",
                field_type=str,
                default="http://localhost:5002",
                description="Base URL of the actor surface",
                env_var="ACTOR_BASE_URL",
                pattern=_URL_PATTERN,
            ),
            FieldDefinition(
                name="actor_timeout_seconds",
                field_type=float,
                default=10.0,
                description="Per-request timeout for actor calls in seconds",
                env_var="ACTOR_TIMEOUT_SECONDS",
                min_value=0.1,
                max_value=300.0,
            ),
            FieldDefinition(
                name="actor_max_retries",
                field_type=int,
                default=2,
                description="Maximum attempts per actor dispatch",
                env_var="ACTOR_MAX_RETRIES",
                min_value=1,
                max_value=10,
            ),
            FieldDefinition(
                name="default_action",
                field_type=str,
                default="say",
                description="Action type used when no action mapping matches",
                env_var="DEFAULT_ACTION",
            ),
        ]


__all__ = [
    "BaseConfig",
    "ConfigError",
    "DispatchConfig",
    "FieldDefinition",
    "InferenceConfig",
    "LoggingConfig",
    "RequiredFieldError",
    "ServiceConfig",
    "TextSourceConfig",
    "ValidationError",
]
