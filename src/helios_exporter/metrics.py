"""Prometheus registry and self-metrics for Helios Exporter."""

import platform

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    GC_COLLECTOR,
    PLATFORM_COLLECTOR,
    PROCESS_COLLECTOR,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from . import __version__
from .collector import ExporterCollector
from .sources import NAMESPACE


class ExporterMetrics:
    """
    The exporter's registry: its own metrics plus the source collector.

    Metrics:
        <namespace>_exporter_build_info
        <namespace>_exporter_http_requests_total{handler,method,code}
        <namespace>_exporter_http_request_duration_seconds{handler}
    """

    def __init__(self, collector: ExporterCollector, namespace: str = NAMESPACE):
        self.collector = collector
        self.registry = CollectorRegistry(auto_describe=True)

        for default in (PROCESS_COLLECTOR, PLATFORM_COLLECTOR, GC_COLLECTOR):
            self.registry.register(default)

        self.build_info = Info(
            "build",
            f"A metric with a constant '1' value labeled by version of {namespace}_exporter.",
            namespace=namespace,
            subsystem="exporter",
            registry=self.registry,
        )
        self.build_info.info({
            "version": __version__,
            "python_version": platform.python_version(),
        })

        self.request_count = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["handler", "method", "code"],
            namespace=namespace,
            subsystem="exporter",
            registry=self.registry,
        )
        self.request_latency = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["handler"],
            namespace=namespace,
            subsystem="exporter",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.registry.register(collector)

    def record_request(self, handler: str, method: str, status: int, latency: float):
        """Record an HTTP request."""
        self.request_count.labels(handler=handler, method=method, code=str(status)).inc()
        self.request_latency.labels(handler=handler).observe(latency)

    def generate(self) -> bytes:
        """Run a scrape and render the registry in the text exposition format."""
        return generate_latest(self.registry)

    @staticmethod
    def content_type() -> str:
        return CONTENT_TYPE_LATEST
