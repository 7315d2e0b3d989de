"""Retrying POST helper shared by the outbound service clients."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from structlog.stdlib import BoundLogger

from .logging import get_logger


@dataclass(frozen=True)
class RetryPolicy:
    """How many attempts to make and how long to wait between them.

    Delays double after each failed attempt, starting at ``backoff_seconds``
    and capped at ``max_backoff_seconds``.
    """

    max_attempts: int = 3
    backoff_seconds: float = 0.5
    max_backoff_seconds: float = 10.0

    def delay(self, attempt: int) -> float:
        return min(self.backoff_seconds * 2 ** (attempt - 1), self.max_backoff_seconds)

    @staticmethod
    def is_retryable(exc: httpx.HTTPError) -> bool:
        # 4xx means the request itself is wrong; sending it again will not help
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.is_server_error
        return isinstance(exc, httpx.TransportError)


async def post_with_retries(
    client: httpx.AsyncClient,
    url: str,
    *,
    json: Any | None = None,
    headers: Mapping[str, str] | None = None,
    policy: RetryPolicy | None = None,
    timeout: float | httpx.Timeout | None = None,
    logger: BoundLogger | None = None,
    log_fields: Mapping[str, Any] | None = None,
) -> httpx.Response:
    """POST ``json`` to ``url`` and return the first successful response.

    Raises:
        httpx.HTTPError: The last failure, once the policy gives up
    """
    policy = policy or RetryPolicy()
    log = (logger or get_logger(__name__)).bind(url=url, **(log_fields or {}))
    request_timeout = timeout if timeout is not None else client.timeout

    for attempt in range(1, policy.max_attempts + 1):
        try:
            response = await client.post(
                url, json=json, headers=headers, timeout=request_timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            final = attempt >= policy.max_attempts or not policy.is_retryable(exc)
            if final:
                log.error(
                    "http.post_failed",
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise
            delay = policy.delay(attempt)
            log.warning(
                "http.post_retry",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                backoff=delay,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await asyncio.sleep(delay)
        else:
            log.debug(
                "http.post_success", attempt=attempt, status_code=response.status_code
            )
            return response

    raise RuntimeError("RetryPolicy.max_attempts must be at least 1")


__all__ = ["RetryPolicy", "post_with_retries"]
