"""Shared fixtures for Helios Exporter tests."""

import asyncio
from typing import Iterable, Optional

import pytest

from helios_exporter.sources import MetricsSource, MetricSink, SourceRegistry


class FakeSource(MetricsSource):
    """Source that emits `count` samples after `delay` seconds, then optionally raises."""

    subsystem = "fake"

    def __init__(self, count: int = 0, delay: float = 0.0, error: Optional[BaseException] = None):
        super().__init__()
        self.count = count
        self.delay = delay
        self.error = error
        self.calls = 0
        self.finished = 0

    async def update(self, sink: MetricSink) -> None:
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            for i in range(self.count):
                sink.emit(self.sample("value", i, labels={"index": str(i)}))
            if self.error is not None:
                raise self.error
        finally:
            self.finished += 1


def scrape_counts(families: Iterable) -> dict[tuple[str, str], float]:
    """Map (source, result) to the scrape duration summary's _count value."""
    counts = {}
    for family in families:
        if family.name != "helios_exporter_scrape_duration_seconds":
            continue
        for sample in family.samples:
            if sample.name.endswith("_count"):
                counts[(sample.labels["source"], sample.labels["result"])] = sample.value
    return counts


def samples_named(families: Iterable, name: str) -> list:
    return [s for family in families for s in family.samples if s.name == name]


@pytest.fixture
def registry():
    """Registry with fast, slow and broken fake sources."""
    registry = SourceRegistry()
    registry.register("fast", lambda: FakeSource(count=3, delay=0.001))
    registry.register("slow", lambda: FakeSource(delay=0.05, error=RuntimeError("backend down")))
    registry.register("broken", lambda: FakeSource(error=ZeroDivisionError("division by zero")))
    return registry


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep exporter settings from the environment out of tests."""
    for var in (
        "HELIOS_EXPORTER_LISTEN_ADDRESS",
        "HELIOS_EXPORTER_METRICS_PATH",
        "HELIOS_EXPORTER_SOURCES",
        "HELIOS_EXPORTER_SCRAPE_TIMEOUT",
        "HELIOS_EXPORTER_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
