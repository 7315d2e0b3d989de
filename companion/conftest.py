"""Shared test fixtures for the companion packages."""

import logging
from collections.abc import Generator

import pytest
import structlog

# Every environment variable read by the configuration classes
CONFIG_ENV_VARS = (
    "LOG_LEVEL",
    "LOG_JSON",
    "SERVICE_NAME",
    "SERVICE_HOST",
    "SERVICE_PORT",
    "TEXT_SOURCE_PATH",
    "TEXT_SOURCE_FORMAT",
    "TEXT_SOURCE_NAME",
    "TEXT_POLL_INTERVAL_MS",
    "TEXT_BUFFER_SIZE",
    "LLM_BASE_URL",
    "LLM_MODEL",
    "LLM_TIMEOUT_SECONDS",
    "LLM_HEALTH_COOLDOWN_SECONDS",
    "LLM_USE_CHAT_MODE",
    "LLM_MAX_CHAT_HISTORY",
    "DISPATCH_INTERVAL_MS",
    "DISPATCH_MAX_UNIT_AGE_SECONDS",
    "ACTOR_BASE_URL",
    "ACTOR_TIMEOUT_SECONDS",
    "ACTOR_MAX_RETRIES",
    "DEFAULT_ACTION",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment variables out of configuration under test."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def isolated_structlog() -> Generator[None, None, None]:
    """Reset structlog configuration between tests."""
    original_config = structlog.get_config()
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield
    structlog.configure(**original_config)
    root.handlers = original_handlers
    root.setLevel(original_level)
    structlog.contextvars.clear_contextvars()
