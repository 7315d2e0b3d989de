"""
Pattern rule engines for post-processing inference output.

Both engines are flat, ordered lists evaluated by the same ``first_match``
helper: entries are tried top to bottom and the first one whose pattern
matches (case-insensitively) and that passes the engine's acceptance test
takes effect. A pattern that fails to compile is logged and skipped.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from functools import lru_cache
from typing import TypeVar

from companion.common.config import ActionMapping, BehaviorRule
from companion.common.logging import get_logger

from .models import RoutedAction

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_ACTION = "say"


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def first_match(
    entries: Iterable[T],
    text: str,
    *,
    pattern: Callable[[T], str],
    accept: Callable[[T], bool] = lambda _: True,
) -> T | None:
    """Return the first accepted entry whose pattern matches ``text``."""
    for entry in entries:
        if not accept(entry):
            continue
        source = pattern(entry)
        if not source:
            logger.warning("rules.empty_pattern_skipped", entry=repr(entry))
            continue
        try:
            compiled = _compile(source)
        except re.error as exc:
            logger.warning("rules.invalid_pattern_skipped", pattern=source, error=str(exc))
            continue
        if compiled.search(text):
            return entry
    return None


class BehaviorRuleEngine:
    """Overrides generated output when the input triggers a behavior rule."""

    def __init__(self, rules: Iterable[BehaviorRule]) -> None:
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[BehaviorRule, ...]:
        return self._rules

    @property
    def enabled_count(self) -> int:
        return sum(1 for rule in self._rules if rule.enabled)

    def apply(self, input_text: str, candidate_output: str) -> str:
        rule = first_match(
            self._rules,
            input_text,
            pattern=lambda r: r.trigger_pattern,
            accept=lambda r: r.enabled and bool(r.override_text),
        )
        if rule is None:
            return candidate_output

        logger.info("behavior_rules.override_applied", rule=rule.name)
        return rule.override_text or candidate_output


class ActionRouter:
    """Maps processed text to an actor action type and parameters."""

    def __init__(
        self,
        mappings: Iterable[ActionMapping],
        default_action: str = DEFAULT_ACTION,
    ) -> None:
        self._mappings = tuple(mappings)
        self._default_action = default_action or DEFAULT_ACTION

    @property
    def mappings(self) -> tuple[ActionMapping, ...]:
        return self._mappings

    def route(self, text: str) -> RoutedAction:
        mapping = first_match(
            self._mappings,
            text,
            pattern=lambda m: m.pattern,
            accept=lambda m: bool(m.action_type),
        )
        if mapping is None:
            return RoutedAction(action_type=self._default_action, parameters={})

        logger.debug(
            "action_router.mapping_matched",
            pattern=mapping.pattern,
            action_type=mapping.action_type,
        )
        return RoutedAction(
            action_type=mapping.action_type,
            parameters=dict(mapping.default_parameters),
        )


__all__ = ["ActionRouter", "BehaviorRuleEngine", "DEFAULT_ACTION", "first_match"]
