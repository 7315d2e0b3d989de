"""Tests for the behavior rule engine and action router."""

import pytest

from companion.common.config import ActionMapping, BehaviorRule, load_pipeline_config
from companion.controller.rules import ActionRouter, BehaviorRuleEngine, first_match


class TestFirstMatch:
    """Test the shared ordered-match evaluator."""

    @pytest.mark.unit
    def test_first_matching_entry_wins(self):
        entries = [("a", r"zzz"), ("b", r"hello"), ("c", r"hel")]

        match = first_match(entries, "HELLO world", pattern=lambda e: e[1])

        assert match == ("b", r"hello")

    @pytest.mark.unit
    def test_invalid_and_empty_patterns_are_skipped(self):
        entries = [("broken", r"(unclosed"), ("empty", ""), ("ok", r"world")]

        match = first_match(entries, "hello world", pattern=lambda e: e[1])

        assert match == ("ok", r"world")

    @pytest.mark.unit
    def test_rejected_entries_are_skipped(self):
        entries = [("no", r"hello"), ("yes", r"hello")]

        match = first_match(
            entries, "hello", pattern=lambda e: e[1], accept=lambda e: e[0] == "yes"
        )

        assert match == ("yes", r"hello")

    @pytest.mark.unit
    def test_no_match(self):
        assert first_match([("a", r"x")], "hello", pattern=lambda e: e[1]) is None


class TestBehaviorRuleEngine:
    """Test output overrides."""

    @pytest.mark.unit
    def test_override_applied_on_input_match(self):
        engine = BehaviorRuleEngine(
            [BehaviorRule(name="greet", trigger_pattern=r"^hi\b", override_text="Hey!")]
        )

        assert engine.apply("Hi there", "model output") == "Hey!"

    @pytest.mark.unit
    def test_candidate_kept_without_match(self):
        engine = BehaviorRuleEngine(
            [BehaviorRule(name="greet", trigger_pattern=r"^hi\b", override_text="Hey!")]
        )

        assert engine.apply("weather today", "Sunny.") == "Sunny."

    @pytest.mark.unit
    def test_rules_are_order_sensitive(self):
        rules = [
            BehaviorRule(name="first", trigger_pattern=r"cat", override_text="one"),
            BehaviorRule(name="second", trigger_pattern=r"cat", override_text="two"),
        ]

        assert BehaviorRuleEngine(rules).apply("a cat", "x") == "one"
        assert BehaviorRuleEngine(rules[::-1]).apply("a cat", "x") == "two"

    @pytest.mark.unit
    def test_disabled_and_textless_rules_are_ignored(self):
        engine = BehaviorRuleEngine(
            [
                BehaviorRule(
                    name="off", trigger_pattern=r"cat", override_text="off", enabled=False
                ),
                BehaviorRule(name="silent", trigger_pattern=r"cat", override_text=""),
                BehaviorRule(name="on", trigger_pattern=r"cat", override_text="on"),
            ]
        )

        assert engine.apply("cat", "x") == "on"
        assert engine.enabled_count == 2

    @pytest.mark.unit
    def test_invalid_rule_does_not_block_later_rules(self):
        engine = BehaviorRuleEngine(
            [
                BehaviorRule(name="bad", trigger_pattern=r"[", override_text="bad"),
                BehaviorRule(name="good", trigger_pattern=r"cat", override_text="good"),
            ]
        )

        assert engine.apply("cat", "x") == "good"


class TestActionRouter:
    """Test action routing."""

    @pytest.mark.unit
    def test_default_when_nothing_matches(self):
        routed = ActionRouter([]).route("just talk")

        assert routed.action_type == "say"
        assert routed.parameters == {}

    @pytest.mark.unit
    def test_configured_default_action(self):
        assert ActionRouter([], default_action="display").route("x").action_type == (
            "display"
        )

    @pytest.mark.unit
    def test_first_mapping_wins_and_parameters_are_copied(self):
        mapping = ActionMapping(
            pattern=r"\bdance\b",
            action_type="animate",
            default_parameters={"animation": "bounce"},
        )
        router = ActionRouter(
            [mapping, ActionMapping(pattern=r"dance", action_type="display")]
        )

        routed = router.route("Let's DANCE!")
        routed.parameters["animation"] = "spin"

        assert routed.action_type == "animate"
        assert mapping.default_parameters == {"animation": "bounce"}

    @pytest.mark.unit
    def test_mapping_without_action_type_is_skipped(self):
        router = ActionRouter(
            [
                ActionMapping(pattern=r"note", action_type=""),
                ActionMapping(pattern=r"note", action_type="display"),
            ]
        )

        assert router.route("note: buy milk").action_type == "display"


class TestConfiguredEngines:
    """Test engines built from a loaded pipeline configuration."""

    @pytest.mark.unit
    def test_malformed_patterns_in_config_are_skipped(self):
        config = load_pipeline_config(
            behavior={
                "behavior_rules": [
                    {"name": "broken", "trigger_pattern": "(unclosed", "override_text": "no"},
                    {"name": "greeting", "trigger_pattern": "hello", "override_text": "Hi!"},
                ],
                "action_mappings": [
                    {"pattern": "[", "action_type": "display"},
                    {"pattern": "dance", "action_type": "animate"},
                ],
            }
        )
        engine = BehaviorRuleEngine(config.behavior.behavior_rules)
        router = ActionRouter(config.behavior.action_mappings)

        assert engine.apply("hello there", "model reply") == "Hi!"
        assert router.route("let us dance").action_type == "animate"
