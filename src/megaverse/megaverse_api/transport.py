"""Sync and async HTTP transports for the Megaverse API.

Each transport performs exactly **one** attempt per request:

1. Acquire a token-bucket slot when client-side pacing is enabled.
2. Send the HTTP request with a JSON content type.
3. On ``2xx`` -- return the parsed JSON body, unless the body declares an
   application-level error (``{"error": true, "message": ...}``).
4. On ``429`` -- raise :class:`MegaverseRateLimitError`.
5. On any other status -- raise :class:`MegaverseAPIError`.
6. On any request-level failure (timeout, refused or dropped connection,
   protocol violation, proxy failure) -- raise :class:`MegaverseNetworkError`.

Retrying is the caller's decision: the submission executors retry
rate-limited operations, map fetches are never retried.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from megaverse.config import MegaverseConfig
from megaverse.errors import (
    MegaverseAPIError,
    MegaverseNetworkError,
    MegaverseRateLimitError,
)
from megaverse.observability import NoopMetricsHook, get_logger

from .rate_limit import AsyncTokenBucket, TokenBucket

log = get_logger("megaverse.transport")


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


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _application_error(body: Any) -> str | None:
    """Return the message of an application-level error body, else ``None``."""
    if isinstance(body, dict) and body.get("error"):
        return str(body.get("message") or body["error"])
    return None


def _raise_for_response(response: httpx.Response, method: str, path: str) -> dict:
    """Return the JSON body of a successful response or raise a typed error."""
    status = response.status_code

    if status == 429:
        retry_after = _parse_retry_after(response)
        raise MegaverseRateLimitError(
            message=f"Rate limited on {method} {path}",
            context={
                "status_code": status,
                "method": method,
                "path": path,
                "retry_after_seconds": retry_after,
            },
        )

    if 200 <= status < 300:
        if status == 204 or not response.content:
            return {}
        body = _json_body(response)
        app_error = _application_error(body)
        if app_error is not None:
            raise MegaverseAPIError(
                message=f"{method} {path} reported an error: {app_error}",
                context={"status_code": status, "method": method, "path": path, "body": body},
            )
        if not isinstance(body, dict):
            raise MegaverseAPIError(
                message=f"{method} {path} returned a non-object body",
                context={"status_code": status, "method": method, "path": path},
            )
        return body

    body = _json_body(response)
    detail = _application_error(body) or response.text[:500]
    raise MegaverseAPIError(
        message=f"Status code: {status} on {method} {path}: {detail}",
        context={"status_code": status, "method": method, "path": path, "body": body},
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
    secret: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from megaverse.utils.redact import redact

    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump, secret), indent=2, default=str),
        file=sys.stderr,
    )


class _TransportBase:
    """Configuration, metrics and response bookkeeping shared by both transports."""

    def __init__(self, config: MegaverseConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    def _client_kwargs(self) -> dict[str, Any]:
        return {
            "base_url": self._config.base_url,
            "headers": {"Content-Type": "application/json"},
            "timeout": httpx.Timeout(self._config.timeout_seconds),
            "proxy": self._config.http_proxy,
        }

    def _record_wait(self, wait: float, method: str, path: str) -> None:
        if wait > 0:
            self._metrics.timing(
                "megaverse.rate_limit_wait_ms",
                wait * 1000,
                tags={"method": method, "path": path},
            )

    def _network_error(self, method: str, path: str, exc: Exception) -> MegaverseNetworkError:
        self._metrics.increment(
            "megaverse.requests_total",
            tags={"method": method, "path": path, "status": "error"},
        )
        log.warning(
            "Request network error",
            extra={
                "extra_fields": {
                    "op": "request",
                    "method": method,
                    "path": path,
                    "error": str(exc),
                }
            },
        )
        return MegaverseNetworkError(
            message=f"Network error on {method} {path}: {exc}",
            context={"method": method, "path": path},
            cause=exc,
        )

    def _handle_response(
        self,
        response: httpx.Response,
        method: str,
        path: str,
        elapsed_ms: float,
        json_payload: Any,
    ) -> dict:
        status = str(response.status_code)
        self._metrics.increment(
            "megaverse.requests_total",
            tags={"method": method, "path": path, "status": status},
        )
        self._metrics.timing(
            "megaverse.request_duration_ms",
            elapsed_ms,
            tags={"method": method, "path": path, "status": status},
        )

        if self._config.debug_dump_payload:
            _dump_payload(
                method, str(response.url), json_payload,
                response.status_code, _json_body(response) or response.text[:1000],
                secret=self._config.candidate_id,
            )

        if response.status_code == 429:
            self._metrics.increment(
                "megaverse.rate_limited_total",
                tags={"method": method, "path": path},
            )
            log.debug(
                "Rate limited by Megaverse API",
                extra={
                    "extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "status_code": 429,
                    }
                },
            )

        return _raise_for_response(response, method, path)


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class MegaverseTransport(_TransportBase):
    """Synchronous single-attempt HTTP transport.

    Parameters
    ----------
    config:
        A :class:`MegaverseConfig` controlling base URL, timeouts and pacing.
    """

    def __init__(self, config: MegaverseConfig) -> None:
        super().__init__(config)
        self._bucket = (
            TokenBucket(rate_rps=config.rate_limit_rps)
            if config.rate_limit_rps is not None
            else None
        )
        self._client = httpx.Client(**self._client_kwargs())

    def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute one HTTP request against the Megaverse API.

        Parameters
        ----------
        method:
            HTTP method (``GET``, ``POST``, ``DELETE``).
        path:
            API path relative to ``base_url`` (e.g. ``/polyanets``).
        **kwargs:
            Forwarded to :meth:`httpx.Client.request`; use ``json=`` for
            bodies.

        Returns
        -------
        dict
            Parsed JSON response body (``{}`` for empty responses).

        Raises
        ------
        MegaverseRateLimitError
            On ``429`` responses.
        MegaverseAPIError
            On any other non-2xx status, or a 2xx error body.
        MegaverseNetworkError
            On timeouts, connection and protocol failures.
        """
        if self._bucket is not None:
            self._record_wait(self._bucket.acquire(), method, path)

        t0 = time.monotonic()
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise self._network_error(method, path, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        return self._handle_response(response, method, path, elapsed_ms, kwargs.get("json"))

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> MegaverseTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncMegaverseTransport(_TransportBase):
    """Asynchronous single-attempt HTTP transport.

    Mirrors :class:`MegaverseTransport` but uses ``httpx.AsyncClient``.

    Parameters
    ----------
    config:
        A :class:`MegaverseConfig` controlling base URL, timeouts and pacing.
    """

    def __init__(self, config: MegaverseConfig) -> None:
        super().__init__(config)
        self._bucket = (
            AsyncTokenBucket(rate_rps=config.rate_limit_rps)
            if config.rate_limit_rps is not None
            else None
        )
        self._client = httpx.AsyncClient(**self._client_kwargs())

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute one HTTP request against the Megaverse API (async).

        See :meth:`MegaverseTransport.request` for full documentation.
        """
        if self._bucket is not None:
            self._record_wait(await self._bucket.acquire(), method, path)

        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise self._network_error(method, path, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        return self._handle_response(response, method, path, elapsed_ms, kwargs.get("json"))

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncMegaverseTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
