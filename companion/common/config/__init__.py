"""Configuration system for the companion pipeline.

This module provides:
- Type-safe, environment-overridable configuration classes
- Structured behavior configuration (prompts, personalities, rules)
- A pipeline preset aggregating every section
"""

from .base import (
    BaseConfig,
    ConfigError,
    DispatchConfig,
    FieldDefinition,
    InferenceConfig,
    LoggingConfig,
    RequiredFieldError,
    ServiceConfig,
    TextSourceConfig,
    ValidationError,
)
from .behavior import (
    ActionMapping,
    BehaviorConfig,
    BehaviorRule,
    PersonalityProfile,
    PromptConfig,
)
from .presets import (
    AdditionalSource,
    PipelineConfig,
    get_pipeline_preset,
    load_pipeline_config,
)


__all__ = [
    # Base classes
    "BaseConfig",
    "ConfigError",
    "ValidationError",
    "RequiredFieldError",
    "FieldDefinition",
    # Sections
    "LoggingConfig",
    "ServiceConfig",
    "TextSourceConfig",
    "InferenceConfig",
    "DispatchConfig",
    # Behavior
    "ActionMapping",
    "BehaviorConfig",
    "BehaviorRule",
    "PersonalityProfile",
    "PromptConfig",
    # Pipeline
    "AdditionalSource",
    "PipelineConfig",
    "get_pipeline_preset",
    "load_pipeline_config",
]
