# src/lecture_rag/observability/base.py

"""Metrics seam for lecture-rag.

Every component takes a ``metrics_hook`` and reports through it with a name
from :mod:`lecture_rag.observability.names`. Durations are milliseconds.
Labels are small string maps such as ``{"backend": "sqlite"}`` or
``{"stage": "extraction"}``; keep their values low-cardinality, never ids.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from time import monotonic
from typing import Protocol


class MetricsHook(Protocol):
    def record_latency(
        self,
        name: str,
        value_ms: float,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def increment(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def record_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None: ...


class NoOpMetricsHook:
    """Default hook. Discards everything."""

    def record_latency(
        self, name: str, value_ms: float, labels: dict[str, str] | None = None
    ) -> None:
        pass

    def increment(
        self, name: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        pass

    def record_gauge(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        pass


class LoggingMetricsHook:
    """Writes each metric as one log record on ``lecture_rag.metrics``.

    Handy when no metrics backend is wired: enable the logger at DEBUG to
    see pipeline stage timings next to the regular log output.
    """

    def __init__(self, logger_name: str = "lecture_rag.metrics", level: int = logging.DEBUG):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    def record_latency(
        self, name: str, value_ms: float, labels: dict[str, str] | None = None
    ) -> None:
        self._logger.log(self._level, "%s=%.1fms %s", name, value_ms, _format(labels))

    def increment(
        self, name: str, value: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        self._logger.log(self._level, "%s+=%d %s", name, value, _format(labels))

    def record_gauge(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        self._logger.log(self._level, "%s=%g %s", name, value, _format(labels))


@contextmanager
def timed(
    hook: MetricsHook, name: str, labels: dict[str, str] | None = None
) -> Iterator[None]:
    """Record the duration of the block as ``name``, also when it raises."""
    start = monotonic()
    try:
        yield
    finally:
        hook.record_latency(name, 1000 * (monotonic() - start), labels)


def _format(labels: dict[str, str] | None) -> str:
    if not labels:
        return "{}"
    return "{" + ", ".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"
