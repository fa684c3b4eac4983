"""Exporter collector - runs every enabled source concurrently on each scrape."""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from prometheus_client import Gauge, Summary
from prometheus_client.core import Metric

from .sources import NAMESPACE, MetricsSource, MetricSample, MetricSink

logger = logging.getLogger(__name__)


@dataclass
class ScrapeOutcome:
    """Timing and result of one source during one scrape."""

    source: str
    duration: float
    success: bool
    error: Optional[str] = None

    @property
    def result(self) -> str:
        return "success" if self.success else "error"


class ExporterCollector:
    """
    prometheus_client collector that fans out to all enabled sources.

    Each scrape runs every source as its own asyncio task and waits for all
    of them. A failing source is logged and recorded in the scrape duration
    summary with result="error"; it never stops the other sources or the
    scrape itself.
    """

    def __init__(
        self,
        sources: Mapping[str, MetricsSource],
        namespace: str = NAMESPACE,
        scrape_timeout: Optional[float] = None,
    ):
        self._sources = MappingProxyType(dict(sources))
        self.scrape_timeout = scrape_timeout

        # Not registered anywhere: collect() exposes them after each scrape
        self._scrape_durations = Summary(
            "scrape_duration_seconds",
            f"{namespace}_exporter: Duration of a scrape job.",
            ["source", "result"],
            namespace=namespace,
            subsystem="exporter",
            registry=None,
        )
        self._last_success = Gauge(
            "last_scrape_success_timestamp_seconds",
            f"{namespace}_exporter: Unix time of the last successful scrape of a source.",
            ["source"],
            namespace=namespace,
            subsystem="exporter",
            registry=None,
        )

    @property
    def sources(self) -> Mapping[str, MetricsSource]:
        """Read-only view of the enabled sources."""
        return self._sources

    def describe(self) -> list[Metric]:
        """Describe the meta-metrics only; sources are not invoked."""
        return [*self._scrape_durations.describe(), *self._last_success.describe()]

    def collect(self) -> Iterator[Metric]:
        """
        Run one scrape and yield the sources' samples and the meta-metrics.

        Called by prometheus_client from a thread without a running event
        loop.
        """
        sink = MetricSink()
        self.run_scrape(sink)

        yield from sink.families()
        yield from self._scrape_durations.collect()
        yield from self._last_success.collect()

    def run_scrape(self, sink: MetricSink) -> list[ScrapeOutcome]:
        """
        Run scrape() to completion on a private event loop.

        Worker threads of timed-out sources are abandoned rather than joined,
        so a hung blocking read can't hold the scrape past scrape_timeout.
        """
        loop = asyncio.new_event_loop()
        executor = ThreadPoolExecutor(thread_name_prefix="helios-source")
        loop.set_default_executor(executor)
        try:
            return loop.run_until_complete(self.scrape(sink))
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            executor.shutdown(wait=False)
            loop.close()

    async def scrape(self, sink: MetricSink) -> list[ScrapeOutcome]:
        """Run every source concurrently and wait for all of them."""
        return list(await asyncio.gather(*(
            self._collect_from_source(name, source, sink)
            for name, source in self._sources.items()
        )))

    async def _collect_from_source(
        self, name: str, source: MetricsSource, sink: MetricSink
    ) -> ScrapeOutcome:
        """Run a single source, recording its duration and result."""
        error = None
        source_sink = _SourceSink(sink)
        begin = time.perf_counter()
        try:
            if self.scrape_timeout is not None:
                await asyncio.wait_for(source.update(source_sink), self.scrape_timeout)
            else:
                await source.update(source_sink)
        except Exception as e:
            error = str(e) or type(e).__name__
            if self.scrape_timeout is not None and isinstance(e, asyncio.TimeoutError) and not str(e):
                error = f"timed out after {self.scrape_timeout} seconds"
        finally:
            # Late writes from an abandoned worker thread are dropped
            source_sink.close()
        duration = time.perf_counter() - begin

        outcome = ScrapeOutcome(source=name, duration=duration, success=error is None, error=error)
        if outcome.success:
            logger.debug(f"OK: {name!r} source succeeded after {duration:.6f} seconds")
            self._last_success.labels(name).set_to_current_time()
        else:
            logger.error(f"ERROR: {name!r} source failed after {duration:.6f} seconds: {error}")

        self._scrape_durations.labels(name, outcome.result).observe(duration)
        return outcome


class _SourceSink(MetricSink):
    """View of the scrape's sink handed to a single source, closed when it finishes."""

    def __init__(self, parent: MetricSink):
        super().__init__()
        self._parent = parent
        self._closed = False

    def emit(self, sample: MetricSample):
        with self._lock:
            if self._closed:
                logger.debug(f"Dropping late sample {sample.name}")
                return
            self._parent.emit(sample)

    def close(self):
        with self._lock:
            self._closed = True
