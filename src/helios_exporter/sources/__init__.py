"""Metrics sources - pluggable producers of metric samples."""

from functools import partial
from typing import Any, Optional

from .base import NAMESPACE, MetricsSource, MetricSample, MetricSink, MetricType
from .registry import SourceFactory, SourceRegistry
from .system import BUILTIN_SOURCES


def register_builtin_sources(
    registry: SourceRegistry,
    options: Optional[dict[str, dict[str, Any]]] = None,
    namespace: str = NAMESPACE,
):
    """Register a factory for every built-in source, bound to its options."""
    options = options or {}
    for name, source_class in BUILTIN_SOURCES.items():
        registry.register(name, partial(source_class, options.get(name), namespace))


__all__ = [
    "NAMESPACE",
    "MetricsSource",
    "MetricSample",
    "MetricSink",
    "MetricType",
    "SourceFactory",
    "SourceRegistry",
    "register_builtin_sources",
]
