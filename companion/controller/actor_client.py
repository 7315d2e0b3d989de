"""HTTP client for the actor presentation surface."""

from __future__ import annotations

import httpx

from companion.common.config import DispatchConfig
from companion.common.http_client import RetryPolicy, post_with_retries
from companion.common.logging import get_logger

from .models import ActionRequest

logger = get_logger(__name__, service_name="controller")

PERFORM_PATH = "/api/actor/perform"


class ActorDispatchError(Exception):
    """Raised when an action could not be delivered to the actor surface."""


class ActorClient:
    """Sends routed actions to the actor surface."""

    def __init__(
        self,
        config: DispatchConfig,
        *,
        client: httpx.AsyncClient | None = None,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.base_url = config.actor_base_url.rstrip("/")
        self.timeout = config.actor_timeout_seconds
        self.retry_policy = RetryPolicy(
            max_attempts=config.actor_max_retries, backoff_seconds=backoff_seconds
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def perform(self, request: ActionRequest) -> None:
        """Deliver one action.

        Raises:
            ActorDispatchError: If every attempt failed
        """
        try:
            await post_with_retries(
                self._client,
                PERFORM_PATH,
                json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
                policy=self.retry_policy,
                timeout=self.timeout,
                logger=logger,
                log_fields={"action": request.action},
            )
        except httpx.HTTPError as exc:
            raise ActorDispatchError(
                f"Actor at {self.base_url} rejected action '{request.action}': {exc}"
            ) from exc

        logger.info(
            "actor_client.action_sent",
            action=request.action,
            text_length=len(request.text),
        )


__all__ = ["ActorClient", "ActorDispatchError", "PERFORM_PATH"]
