"""Fixtures for controller tests."""

import pytest

from companion.common.config import BehaviorConfig, DispatchConfig, InferenceConfig
from companion.controller.tests.fakes import ACTOR_URL, OLLAMA_URL, FakeClock, FakeOllama


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def inference_config() -> InferenceConfig:
    return InferenceConfig(
        base_url=OLLAMA_URL,
        model="llama3.2",
        health_cooldown_seconds=30.0,
        max_chat_history=4,
    )


@pytest.fixture
def dispatch_config() -> DispatchConfig:
    return DispatchConfig(
        interval_ms=10,
        actor_base_url=ACTOR_URL,
        actor_max_retries=2,
    )


@pytest.fixture
def behavior() -> BehaviorConfig:
    return BehaviorConfig.from_dict(
        {
            "prompt": {"system_prompt": "Be brief."},
            "behavior_rules": [
                {
                    "name": "greeting",
                    "trigger_pattern": r"^\s*(hello|hi)\b",
                    "override_text": "Hello! Nice to see you.",
                }
            ],
            "action_mappings": [
                {
                    "pattern": r"\bdance\b",
                    "action_type": "animate",
                    "default_parameters": {"animation": "bounce"},
                }
            ],
        }
    )
