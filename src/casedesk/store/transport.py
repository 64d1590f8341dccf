"""Sync and async HTTP transports for the Supabase REST and Storage APIs.

Each transport handles the full request lifecycle:

1. Acquire a token-bucket slot (wait if needed).
2. Send the HTTP request with ``apikey`` and bearer headers.
3. On ``2xx`` -- return the response.
4. On ``429`` -- honour ``Retry-After``, sleep, and retry.
5. On ``408``/``5xx``/network error -- exponential backoff and retry.
6. On non-retryable ``4xx`` -- raise the matching typed error immediately.
7. On max attempts exceeded -- raise :class:`CasedeskRetryExhaustedError`.

Callers can pin ``max_attempts=1`` for writes that must not be repeated
behind the user's back.
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from typing import Any

import httpx

from casedesk.config import CasedeskConfig
from casedesk.errors import (
    CasedeskAuthError,
    CasedeskConflictError,
    CasedeskNetworkError,
    CasedeskNotFoundError,
    CasedeskPermissionError,
    CasedeskRetryExhaustedError,
    CasedeskValidationError,
)
from casedesk.observability import fields, get_logger, resolve_metrics
from casedesk.utils.redact import redact

from .rate_limit import AsyncTokenBucket, TokenBucket
from .retries import _RETRYABLE_STATUSES, compute_backoff, should_retry

log = get_logger("casedesk.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`CasedeskError` subclass for a non-retryable 4xx.

    PostgREST bodies carry ``code``/``message``/``details``; Storage bodies
    carry ``error``/``message``.
    """
    status = response.status_code
    body = _error_body(response)
    store_message = body.get("message") or response.text[:500]
    store_code = body.get("code") or body.get("error") or ""
    ctx: dict[str, Any] = {"status_code": status, "store_code": store_code, "path": path}

    if status == 401:
        raise CasedeskAuthError(
            message=f"Authentication failed on {method} {path}: {store_message}",
            context=ctx,
        )
    if status == 403:
        raise CasedeskPermissionError(
            message=f"Permission denied on {method} {path}: {store_message}",
            context={**ctx, "operation": f"{method} {path}"},
        )
    if status == 404:
        raise CasedeskNotFoundError(
            message=f"Resource not found on {method} {path}: {store_message}",
            context=ctx,
        )
    if status == 409:
        raise CasedeskConflictError(
            message=f"Conflict on {method} {path}: {store_message}",
            context=ctx,
        )
    raise CasedeskValidationError(
        message=f"Client error {status} on {method} {path}: {store_message}",
        context={**ctx, "details": body.get("details"), "hint": body.get("hint")},
    )


def _decode(response: httpx.Response) -> Any:
    """Parse a successful response body; empty bodies decode to ``None``."""
    if response.status_code == 204 or not response.content:
        return None
    return response.json()


def _emit_debug_dump(
    config: CasedeskConfig,
    method: str,
    response: httpx.Response,
    json_payload: Any,
) -> None:
    """Write a redacted request/response dump to stderr if enabled."""
    if not config.debug_dump_payload:
        return
    dump: dict[str, Any] = {
        "method": method,
        "url": str(response.url),
        "response_status": response.status_code,
    }
    if json_payload is not None:
        dump["request_body"] = json_payload
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            dump["response_body"] = response.json()
        except ValueError:
            dump["response_body"] = response.text[:1000]
    print(
        _json.dumps(redact(dump, config.api_key), indent=2, default=str),
        file=sys.stderr,
    )


def _default_headers(config: CasedeskConfig) -> dict[str, str]:
    return {
        "apikey": config.api_key,
        "Authorization": f"Bearer {config.bearer_token}",
        "Accept-Profile": config.schema,
        "Content-Profile": config.schema,
    }


class _Attempts:
    """Per-request bookkeeping shared by the sync and async loops."""

    __slots__ = ("config", "last_exception", "last_status", "max_attempts", "method", "metrics", "path")

    def __init__(
        self,
        config: CasedeskConfig,
        metrics: Any,
        method: str,
        path: str,
        max_attempts: int | None,
    ) -> None:
        self.config = config
        self.metrics = metrics
        self.method = method
        self.path = path
        self.max_attempts = max_attempts or config.retry_max_attempts
        self.last_exception: Exception | None = None
        self.last_status: int | None = None

    def _tags(self, **extra: str) -> dict[str, str]:
        return {"method": self.method, "path": self.path, **extra}

    def on_network_error(self, exc: Exception, attempt: int) -> float:
        """Return the backoff delay or raise :class:`CasedeskNetworkError`."""
        self.last_exception = exc
        self.last_status = None
        self.metrics.increment("casedesk.requests_total", tags=self._tags(status="error"))
        log.warning(
            "Request network error",
            extra=fields(
                op="request",
                method=self.method,
                path=self.path,
                attempt=attempt + 1,
                error=str(exc),
            ),
        )
        if should_retry(None, exc, attempt, self.max_attempts):
            self.metrics.increment("casedesk.retries_total", tags=self._tags(reason="network_error"))
            return compute_backoff(
                attempt,
                base=self.config.retry_base_delay,
                maximum=self.config.retry_max_delay,
                jitter=self.config.retry_jitter,
            )
        raise CasedeskNetworkError(
            message=f"Network error on {self.method} {self.path}: {exc}",
            context={"url": self.path, "attempt": attempt + 1},
            cause=exc,
        ) from exc

    def on_response(self, response: httpx.Response, attempt: int, elapsed_ms: float) -> float | None:
        """Return ``None`` on success, a retry delay, or raise a typed error.

        Returns ``-1.0`` when the status is retryable but attempts ran out.
        """
        status = response.status_code
        self.last_status = status
        self.last_exception = None
        self.metrics.increment("casedesk.requests_total", tags=self._tags(status=str(status)))
        self.metrics.timing(
            "casedesk.request_duration_ms", elapsed_ms, tags=self._tags(status=str(status)),
        )

        if 200 <= status < 300:
            return None
        if status not in _RETRYABLE_STATUSES:
            _raise_for_status(response, self.method, self.path)
        if not should_retry(status, None, attempt, self.max_attempts):
            return -1.0

        retry_after: float | None = None
        reason = "server_error"
        if status == 429:
            retry_after = _parse_retry_after(response)
            reason = "rate_limited"
            log.warning(
                "Rate limited by store",
                extra=fields(
                    op="request",
                    method=self.method,
                    path=self.path,
                    retry_after=retry_after,
                    attempt=attempt + 1,
                ),
            )
        self.metrics.increment("casedesk.retries_total", tags=self._tags(reason=reason))
        return compute_backoff(
            attempt,
            base=self.config.retry_base_delay,
            maximum=self.config.retry_max_delay,
            jitter=self.config.retry_jitter,
            retry_after=retry_after,
        )

    def exhausted(self) -> CasedeskRetryExhaustedError:
        ctx: dict[str, Any] = {
            "attempts": self.max_attempts,
            "last_status_code": self.last_status,
        }
        last = (
            f"last error: {self.last_exception}"
            if self.last_exception is not None
            else f"last status: {self.last_status}"
        )
        return CasedeskRetryExhaustedError(
            message=f"All {self.max_attempts} attempts exhausted for {self.method} {self.path} ({last})",
            context=ctx,
            cause=self.last_exception,
        )


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class StoreTransport:
    """Synchronous HTTP transport with auth, retry, and rate limiting.

    Parameters
    ----------
    config:
        A :class:`CasedeskConfig` instance controlling all transport behaviour.
    http_transport:
        Optional httpx transport (tests inject :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        config: CasedeskConfig,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._bucket = TokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = resolve_metrics(config.metrics)
        self._client = httpx.Client(
            base_url=config.url,
            headers=_default_headers(config),
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
            transport=http_transport,
        )

    @property
    def config(self) -> CasedeskConfig:
        return self._config

    def send(
        self,
        method: str,
        path: str,
        *,
        max_attempts: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute a request and return the successful :class:`httpx.Response`.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            Path relative to the project URL (``/rest/v1/cases``).
        max_attempts:
            Override the configured attempt budget; ``1`` disables retries.
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``params=``, ``headers=``).

        Raises
        ------
        CasedeskAuthError, CasedeskPermissionError, CasedeskNotFoundError,
        CasedeskConflictError, CasedeskValidationError
            On non-retryable 4xx responses.
        CasedeskRetryExhaustedError
            When every attempt got a retryable status.
        CasedeskNetworkError
            On transport-level failures after exhausting retries.
        """
        attempts = _Attempts(self._config, self._metrics, method, path, max_attempts)
        json_payload = kwargs.get("json")

        for attempt in range(attempts.max_attempts):
            wait = self._bucket.acquire()
            if wait > 0:
                self._metrics.timing("casedesk.rate_limit_wait_ms", wait * 1000)

            t0 = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                time.sleep(attempts.on_network_error(exc, attempt))
                continue

            _emit_debug_dump(self._config, method, response, json_payload)
            delay = attempts.on_response(response, attempt, (time.monotonic() - t0) * 1000)
            if delay is None:
                return response
            if delay < 0:
                break
            time.sleep(delay)

        raise attempts.exhausted()

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like :meth:`send` but returns the decoded JSON body (or ``None``)."""
        return _decode(self.send(method, path, **kwargs))

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> StoreTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncStoreTransport:
    """Asynchronous HTTP transport with auth, retry, and rate limiting.

    Mirrors :class:`StoreTransport` but uses ``httpx.AsyncClient`` and
    ``asyncio.sleep`` for non-blocking I/O.
    """

    def __init__(
        self,
        config: CasedeskConfig,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._bucket = AsyncTokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = resolve_metrics(config.metrics)
        self._client = httpx.AsyncClient(
            base_url=config.url,
            headers=_default_headers(config),
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
            transport=http_transport,
        )

    @property
    def config(self) -> CasedeskConfig:
        return self._config

    async def send(
        self,
        method: str,
        path: str,
        *,
        max_attempts: int | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Async equivalent of :meth:`StoreTransport.send`."""
        attempts = _Attempts(self._config, self._metrics, method, path, max_attempts)
        json_payload = kwargs.get("json")

        for attempt in range(attempts.max_attempts):
            wait = await self._bucket.acquire()
            if wait > 0:
                self._metrics.timing("casedesk.rate_limit_wait_ms", wait * 1000)

            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                await asyncio.sleep(attempts.on_network_error(exc, attempt))
                continue

            _emit_debug_dump(self._config, method, response, json_payload)
            delay = attempts.on_response(response, attempt, (time.monotonic() - t0) * 1000)
            if delay is None:
                return response
            if delay < 0:
                break
            await asyncio.sleep(delay)

        raise attempts.exhausted()

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like :meth:`send` but returns the decoded JSON body (or ``None``)."""
        return _decode(await self.send(method, path, **kwargs))

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncStoreTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
