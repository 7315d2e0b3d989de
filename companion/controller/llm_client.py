"""HTTP client for a locally hosted Ollama inference backend.

The client tracks backend availability so the dispatch cycle can skip work
cheaply while the backend is down:

* ``check_health`` asks ``/api/tags`` whether the server answers and the
  configured model is installed;
* ``ensure_available`` re-runs that check only after the cooldown has
  elapsed since the previous one;
* a connection failure during a generate/chat call marks the backend
  unavailable immediately.

Backend failures are reported through ``InferenceResult`` and never raised.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

import httpx
from pydantic import BaseModel

from companion.common.config import BehaviorConfig, InferenceConfig
from companion.common.logging import get_logger

from .history import ChatHistory
from .models import (
    BackendHealth,
    ChatRequest,
    ChatResponse,
    ChatTurn,
    GenerateRequest,
    GenerateResponse,
    InferenceResult,
    TagsResponse,
)

logger = get_logger(__name__, service_name="controller")

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class InferenceBackendError(Exception):
    """Raised internally when a backend call fails."""

    def __init__(self, message: str, *, connection_failure: bool = False) -> None:
        super().__init__(message)
        self.connection_failure = connection_failure


class InferenceClient:
    """Client for the Ollama generate/chat API with availability gating."""

    def __init__(
        self,
        config: InferenceConfig,
        behavior: BehaviorConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._behavior = behavior or BehaviorConfig()
        self._model: str = config.model
        self._base_url: str = config.base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=config.timeout_seconds,
        )
        self._clock = clock
        self._history = ChatHistory(config.max_chat_history)

        self._health = BackendHealth()
        self._last_check: float | None = None
        self._health_lock = threading.Lock()
        self._logger = logger

    @property
    def model(self) -> str:
        return self._model

    @property
    def history(self) -> ChatHistory:
        return self._history

    @property
    def health(self) -> BackendHealth:
        with self._health_lock:
            return self._health

    @property
    def is_available(self) -> bool:
        return self.health.available

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def reset_history(self) -> None:
        self._history.clear()
        self._logger.info("llm_client.history_reset")

    # Availability

    async def check_health(self) -> BackendHealth:
        """Confirm the backend responds and the configured model is installed."""
        try:
            response = await self._client.get("/api/tags")
        except httpx.TransportError as exc:
            return self._record_health(
                False,
                f"Cannot connect to Ollama at {self._base_url}. Error: {exc}. "
                "Make sure Ollama is running with 'ollama serve'.",
            )
        except httpx.HTTPError as exc:
            return self._record_health(False, f"Health check failed: {exc}")

        if not response.is_success:
            return self._record_health(
                False,
                f"Ollama server at {self._base_url} returned HTTP "
                f"{response.status_code} while checking for model '{self._model}'. "
                "Make sure Ollama is installed and run 'ollama serve'.",
            )

        try:
            tags = TagsResponse.model_validate(response.json())
        except ValueError as exc:
            return self._record_health(
                False, f"Health check failed: unexpected /api/tags response: {exc}"
            )

        names = [m.name for m in tags.models]
        if not any(self._matches_model(name) for name in names):
            return self._record_health(
                False,
                f"Model '{self._model}' not found. Run 'ollama pull {self._model}' "
                f"to download it. Available models: {', '.join(names) or 'none'}",
            )

        return self._record_health(True, None)

    async def ensure_available(self) -> bool:
        """Return availability, re-checking only once the cooldown has elapsed."""
        with self._health_lock:
            available = self._health.available
            last_check = self._last_check

        if available:
            return True

        if last_check is not None:
            elapsed = self._clock() - last_check
            if elapsed < self._config.health_cooldown_seconds:
                self._logger.debug(
                    "llm_client.availability_check_deferred",
                    elapsed_seconds=round(elapsed, 3),
                    cooldown_seconds=self._config.health_cooldown_seconds,
                )
                return False

        health = await self.check_health()
        return health.available

    def _matches_model(self, name: str) -> bool:
        return name == self._model or name.startswith(f"{self._model}:")

    def _record_health(self, available: bool, message: str | None) -> BackendHealth:
        health = BackendHealth(
            available=available,
            last_checked_at=datetime.now(timezone.utc),
            message=message,
        )
        with self._health_lock:
            previous = self._health.available
            self._health = health
            self._last_check = self._clock()

        if available:
            if not previous:
                self._logger.info(
                    "llm_client.backend_available",
                    base_url=self._base_url,
                    model=self._model,
                )
        else:
            self._logger.warning(
                "llm_client.health_check_failed",
                base_url=self._base_url,
                model=self._model,
                message=message,
            )
        return health

    # Requests

    async def generate(self, prompt: str, system: str | None = None) -> InferenceResult:
        """Send a single-turn completion request."""
        request = GenerateRequest(model=self._model, prompt=prompt, system=system or None)
        self._logger.debug(
            "llm_client.generate_request",
            model=self._model,
            prompt_length=len(prompt),
        )
        try:
            response = await self._post("/api/generate", request, GenerateResponse)
        except InferenceBackendError as exc:
            return self._failure(exc)

        return self._success(
            response.response,
            response.model,
            response.prompt_eval_count,
            response.eval_count,
            response.total_duration,
            response.load_duration,
        )

    async def chat(self, messages: list[ChatTurn]) -> InferenceResult:
        """Send a multi-turn chat request."""
        request = ChatRequest(model=self._model, messages=messages)
        self._logger.debug(
            "llm_client.chat_request",
            model=self._model,
            message_count=len(messages),
        )
        try:
            response = await self._post("/api/chat", request, ChatResponse)
        except InferenceBackendError as exc:
            return self._failure(exc)

        if response.message is None:
            return self._failure(
                InferenceBackendError("Chat response did not include a message")
            )

        return self._success(
            response.message.content,
            response.model,
            response.prompt_eval_count,
            response.eval_count,
            response.total_duration,
            response.load_duration,
        )

    async def process(self, text: str) -> InferenceResult:
        """Run the configured mode (chat or single-turn) for one input text."""
        system_prompt = self._behavior.system_prompt()

        if not self._config.use_chat_mode:
            return await self.generate(
                self._behavior.prompt.render(text), system=system_prompt or None
            )

        self._history.append(ChatTurn.user(text))
        messages = self._history.turns()
        if system_prompt.strip():
            messages.insert(0, ChatTurn.system(system_prompt))

        result = await self.chat(messages)
        if result.success:
            self._history.append(ChatTurn.assistant(result.text))
        return result

    async def _post(
        self, path: str, request: BaseModel, response_model: type[ResponseT]
    ) -> ResponseT:
        try:
            response = await self._client.post(
                path, json=request.model_dump(mode="json", exclude_none=True)
            )
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise InferenceBackendError(
                f"Cannot connect to Ollama at {self._base_url}. Error: {exc}. "
                "Make sure Ollama is running with 'ollama serve'.",
                connection_failure=True,
            ) from exc
        except httpx.TimeoutException as exc:
            raise InferenceBackendError(
                f"Request to {path} timed out after {self._config.timeout_seconds}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise InferenceBackendError(f"Request to {path} failed: {exc}") from exc

        if not response.is_success:
            raise InferenceBackendError(self._describe_status(response))

        try:
            return response_model.model_validate(response.json())
        except ValueError as exc:
            raise InferenceBackendError(
                f"Failed to parse response from {path}: {exc}"
            ) from exc

    def _describe_status(self, response: httpx.Response) -> str:
        if response.status_code == httpx.codes.NOT_FOUND:
            return (
                f"404 Not Found - Model '{self._model}' may not exist or Ollama API "
                f"is not available. Try 'ollama pull {self._model}' to download the model."
            )
        if response.status_code == httpx.codes.SERVICE_UNAVAILABLE:
            return (
                "503 Service Unavailable - Ollama server is not responding. "
                "Ensure 'ollama serve' is running."
            )
        return f"HTTP {response.status_code} - {response.text}"

    def _failure(self, exc: InferenceBackendError) -> InferenceResult:
        message = str(exc)
        if exc.connection_failure:
            with self._health_lock:
                self._health = BackendHealth(
                    available=False,
                    last_checked_at=datetime.now(timezone.utc),
                    message=message,
                )
                self._last_check = self._clock()
            self._logger.warning(
                "llm_client.backend_marked_unavailable",
                base_url=self._base_url,
                error=message,
            )
        else:
            self._logger.error("llm_client.request_failed", model=self._model, error=message)
        return InferenceResult.failure(self._model, message)

    def _success(
        self,
        text: str,
        model: str,
        prompt_tokens: int,
        response_tokens: int,
        total_duration: int,
        load_duration: int,
    ) -> InferenceResult:
        self._logger.info(
            "llm_client.response_received",
            model=model or self._model,
            prompt_tokens=prompt_tokens,
            response_tokens=response_tokens,
            total_duration_ms=total_duration / 1_000_000,
        )
        return InferenceResult(
            text=text,
            success=True,
            model=model or self._model,
            prompt_tokens=prompt_tokens,
            response_tokens=response_tokens,
            total_duration_nanos=total_duration,
            load_duration_nanos=load_duration,
        )


__all__ = ["InferenceBackendError", "InferenceClient"]
