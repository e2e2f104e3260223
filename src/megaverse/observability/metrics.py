"""Metrics hook protocol and no-op default implementation.

megaverse emits counters and timings around API requests, rate-limit
retries and planned operations.  By default a :class:`NoopMetricsHook` is
used so there is zero overhead.  Pass any object satisfying
:class:`MetricsHook` as ``MegaverseConfig(metrics=...)`` to route them to
StatsD, Prometheus or similar.

Emitted metric names:

* ``megaverse.requests_total``         -- counter
* ``megaverse.request_duration_ms``    -- timing
* ``megaverse.rate_limited_total``     -- counter
* ``megaverse.rate_limit_wait_ms``     -- timing
* ``megaverse.retries_total``          -- counter
* ``megaverse.ops_submitted_total``    -- counter
* ``megaverse.delta_ops_total``        -- counter
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
