"""Metric names and hooks shared by every lecture-rag component."""

from . import names
from .base import LoggingMetricsHook, MetricsHook, NoOpMetricsHook, timed

__all__ = [
    "LoggingMetricsHook",
    "MetricsHook",
    "NoOpMetricsHook",
    "names",
    "timed",
]
