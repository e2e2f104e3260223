"""Observability: structured logging and metrics hooks for megaverse."""

from __future__ import annotations

from .logger import StructuredFormatter, get_logger, register_secret, set_level
from .metrics import MetricsHook, NoopMetricsHook

__all__ = [
    "MetricsHook",
    "NoopMetricsHook",
    "StructuredFormatter",
    "get_logger",
    "register_secret",
    "set_level",
]
