"""
Behavior configuration for the companion controller.

This module defines the prompt, personality, behavior-rule and
action-mapping settings consumed by the inference client and the rule
engines. All of it is static configuration, read-only at runtime.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PromptConfig:
    """Prompt settings used when building inference requests."""

    system_prompt: str = ""
    user_prompt_template: str = "{input}"

    def render(self, text: str) -> str:
        """Render the user prompt for a single-turn request."""
        template = self.user_prompt_template or "{input}"
        if "{input}" not in template:
            return f"{template}\n{text}"
        return template.replace("{input}", text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "system_prompt": self.system_prompt,
            "user_prompt_template": self.user_prompt_template,
        }


@dataclass(frozen=True)
class PersonalityProfile:
    """A selectable personality with its own system prompt."""

    name: str
    display_name: str = ""
    description: str = ""
    system_prompt: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "system_prompt": self.system_prompt,
        }


@dataclass(frozen=True)
class BehaviorRule:
    """Pattern-triggered override of generated output."""

    name: str
    trigger_pattern: str
    enabled: bool = True
    override_text: str | None = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "trigger_pattern": self.trigger_pattern,
            "enabled": self.enabled,
            "override_text": self.override_text,
            "description": self.description,
        }


@dataclass(frozen=True)
class ActionMapping:
    """Pattern-triggered selection of a downstream action type."""

    pattern: str
    action_type: str
    default_parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "action_type": self.action_type,
            "default_parameters": dict(self.default_parameters),
        }


@dataclass
class BehaviorConfig:
    """Complete behavior configuration."""

    prompt: PromptConfig = field(default_factory=PromptConfig)
    personalities: list[PersonalityProfile] = field(default_factory=list)
    active_personality: str = "default"
    behavior_rules: list[BehaviorRule] = field(default_factory=list)
    action_mappings: list[ActionMapping] = field(default_factory=list)

    def get_active_personality(self) -> PersonalityProfile | None:
        for personality in self.personalities:
            if personality.name.lower() == self.active_personality.lower():
                return personality
        return None

    def system_prompt(self) -> str:
        """Return the system prompt of the active personality, or the default prompt."""
        personality = self.get_active_personality()
        if personality is not None and personality.system_prompt.strip():
            return personality.system_prompt
        return self.prompt.system_prompt

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt.to_dict(),
            "personalities": [p.to_dict() for p in self.personalities],
            "active_personality": self.active_personality,
            "behavior_rules": [r.to_dict() for r in self.behavior_rules],
            "action_mappings": [m.to_dict() for m in self.action_mappings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BehaviorConfig:
        """Create BehaviorConfig from dictionary."""
        config = cls()

        if "prompt" in data:
            prompt_data = data["prompt"]
            config.prompt = PromptConfig(
                system_prompt=prompt_data.get("system_prompt", ""),
                user_prompt_template=prompt_data.get("user_prompt_template", "{input}"),
            )

        config.personalities = [
            PersonalityProfile(
                name=item["name"],
                display_name=item.get("display_name", ""),
                description=item.get("description", ""),
                system_prompt=item.get("system_prompt", ""),
            )
            for item in data.get("personalities", [])
        ]
        config.active_personality = data.get("active_personality", "default")

        config.behavior_rules = [
            BehaviorRule(
                name=item.get("name", ""),
                trigger_pattern=item.get("trigger_pattern", ""),
                enabled=item.get("enabled", True),
                override_text=item.get("override_text"),
                description=item.get("description", ""),
            )
            for item in data.get("behavior_rules", [])
        ]
        config.action_mappings = [
            ActionMapping(
                pattern=item.get("pattern", ""),
                action_type=item.get("action_type", ""),
                default_parameters=dict(item.get("default_parameters") or {}),
            )
            for item in data.get("action_mappings", [])
        ]

        return config

    def validate(self) -> list[str]:
        """Validate configuration and return list of structural errors.

        Pattern problems are not included; see ``pattern_problems``.
        """
        errors = []

        for rule in self.behavior_rules:
            if not rule.name:
                errors.append("Behavior rule name must not be empty")

        for index, mapping in enumerate(self.action_mappings):
            if not mapping.action_type:
                errors.append(f"Action mapping #{index} must have an action type")

        names = [p.name.lower() for p in self.personalities]
        if len(names) != len(set(names)):
            errors.append("Personality names must be unique")

        return errors

    def pattern_problems(self) -> list[str]:
        """Describe every empty or uncompilable pattern.

        These are not fatal: the rule engines log and skip such entries.
        """
        problems = []
        for rule in self.behavior_rules:
            error = _pattern_error(rule.trigger_pattern)
            if error:
                problems.append(f"Behavior rule '{rule.name}' pattern {error}")
        for index, mapping in enumerate(self.action_mappings):
            error = _pattern_error(mapping.pattern)
            if error:
                problems.append(f"Action mapping #{index} pattern {error}")
        return problems


def _pattern_error(pattern: str) -> str | None:
    if not pattern:
        return "is empty"
    try:
        re.compile(pattern)
    except re.error as exc:
        return f"is invalid: {exc}"
    return None


__all__ = [
    "ActionMapping",
    "BehaviorConfig",
    "BehaviorRule",
    "PersonalityProfile",
    "PromptConfig",
]
