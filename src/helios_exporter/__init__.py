"""Helios Exporter - Prometheus exporter for pluggable metrics sources."""

__version__ = "0.1.0"

from .collector import ExporterCollector, ScrapeOutcome
from .sources import MetricsSource, MetricSample, MetricSink, MetricType, SourceRegistry

__all__ = [
    "__version__",
    "ExporterCollector",
    "ScrapeOutcome",
    "MetricsSource",
    "MetricSample",
    "MetricSink",
    "MetricType",
    "SourceRegistry",
]
