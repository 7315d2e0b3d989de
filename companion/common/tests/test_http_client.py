"""Tests for the retrying POST helper."""

import json

import httpx
import pytest

from companion.common.http_client import RetryPolicy, post_with_retries


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://actor.test"
    )


class TestPostWithRetries:
    """Test retry classification and backoff."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            response = await post_with_retries(client, "/perform", json={"a": 1})

        assert response.json() == {"ok": True}
        assert len(calls) == 1
        assert json.loads(calls[0].content) == {"a": 1}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_server_errors_until_success(self):
        statuses = iter([503, 500, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses))

        async with _client(handler) as client:
            response = await post_with_retries(
                client, "/perform", policy=RetryPolicy(max_attempts=3, backoff_seconds=0)
            )

        assert response.status_code == 200

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(422)

        async with _client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await post_with_retries(
                    client, "/perform", policy=RetryPolicy(max_attempts=5, backoff_seconds=0)
                )

        assert len(calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transport_errors_exhaust_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(httpx.ConnectError):
                await post_with_retries(
                    client, "/perform", policy=RetryPolicy(max_attempts=2, backoff_seconds=0)
                )

        assert len(calls) == 2


class TestRetryPolicy:
    """Test backoff and retry classification."""

    @pytest.mark.unit
    def test_delay_doubles_up_to_cap(self):
        policy = RetryPolicy(backoff_seconds=1.0, max_backoff_seconds=5.0)

        assert [policy.delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]

    @pytest.mark.unit
    def test_classification(self):
        request = httpx.Request("POST", "http://actor.test/perform")

        def status_error(code: int) -> httpx.HTTPStatusError:
            return httpx.HTTPStatusError(
                "error", request=request, response=httpx.Response(code, request=request)
            )

        assert RetryPolicy.is_retryable(status_error(503))
        assert not RetryPolicy.is_retryable(status_error(404))
        assert RetryPolicy.is_retryable(httpx.ReadTimeout("slow", request=request))
