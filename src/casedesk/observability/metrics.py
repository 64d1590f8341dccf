"""Metrics hook protocol and no-op default implementation.

casedesk emits counters and timings at the store boundary and in the edit
session.  By default a :class:`NoopMetricsHook` is used.  Supply any object
satisfying :class:`MetricsHook` through ``CasedeskConfig(metrics=...)`` to
route data points to StatsD, Prometheus or similar.

Emitted metric names:

* ``casedesk.requests_total``        -- counter, tags ``method``/``status``
* ``casedesk.retries_total``         -- counter, tag ``reason``
* ``casedesk.request_duration_ms``   -- timing
* ``casedesk.rate_limit_wait_ms``    -- timing
* ``casedesk.saves_total``           -- counter, tag ``outcome``
* ``casedesk.fields_updated_total``  -- counter, tag ``table``
* ``casedesk.notifications_total``   -- counter, tag ``type``
* ``casedesk.webhook_updates_total`` -- counter, tag ``status``
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy."""

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
    """Discards every data point."""

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


def resolve_metrics(metrics: MetricsHook | None) -> MetricsHook:
    """Return *metrics* or a shared no-op hook."""
    return metrics if metrics is not None else _NOOP


_NOOP = NoopMetricsHook()
