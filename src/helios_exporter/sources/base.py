"""Base interface for all metrics sources."""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from prometheus_client.core import Metric

logger = logging.getLogger(__name__)

# Namespace shared by every metric the exporter produces
NAMESPACE = "helios"


class MetricType(str, Enum):
    """Types of metrics a source can emit."""
    GAUGE = "gauge"
    COUNTER = "counter"
    UNTYPED = "unknown"


@dataclass
class MetricSample:
    """A single metric sample emitted by a source."""

    name: str
    value: float
    metric_type: MetricType = MetricType.GAUGE
    labels: dict[str, str] = field(default_factory=dict)
    documentation: str = ""

    @property
    def family_name(self) -> str:
        """Name of the metric family this sample belongs to."""
        if self.metric_type == MetricType.COUNTER and self.name.endswith("_total"):
            return self.name[:-len("_total")]
        return self.name


class MetricSink:
    """
    Write-only conduit that sources emit samples into.

    One sink is created per scrape and shared by every source running in
    that scrape, so writes are serialized with a lock.
    """

    def __init__(self):
        self._samples: list[MetricSample] = []
        self._lock = threading.Lock()

    def emit(self, sample: MetricSample):
        """Append a sample."""
        with self._lock:
            self._samples.append(sample)

    def samples(self) -> list[MetricSample]:
        """Return a snapshot of the samples emitted so far."""
        with self._lock:
            return list(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def families(self) -> list[Metric]:
        """Group emitted samples into prometheus_client metric families."""
        families: dict[str, Metric] = {}

        for sample in self.samples():
            name = sample.family_name
            family = families.get(name)
            if family is None:
                family = Metric(name, sample.documentation or name, sample.metric_type.value)
                families[name] = family
            elif family.type != sample.metric_type.value:
                logger.warning(
                    f"Dropping sample {sample.name}: type {sample.metric_type.value} "
                    f"conflicts with {family.type}"
                )
                continue

            sample_name = f"{name}_total" if family.type == "counter" else name
            family.add_sample(sample_name, dict(sample.labels), float(sample.value))

        return list(families.values())


class MetricsSource(ABC):
    """
    Abstract base class for all metrics sources.

    Implement this interface to add a new source of metrics, then register
    a factory for it with a SourceRegistry.

    Example:
        class UptimeSource(MetricsSource):
            subsystem = "host"

            async def update(self, sink: MetricSink) -> None:
                sink.emit(self.sample("uptime_seconds", read_uptime()))

    Options:
        labels: dict - Constant labels added to every sample (default: {})
    """

    # Middle part of every metric name, e.g. helios_<subsystem>_<name>
    subsystem: str = ""
    # One-line summary shown by `helios-exporter sources`
    description: str = ""

    def __init__(self, options: Optional[dict[str, Any]] = None, namespace: str = NAMESPACE):
        self.options = options or {}
        self.namespace = namespace

    @abstractmethod
    async def update(self, sink: MetricSink) -> None:
        """
        Emit this source's samples into the sink.

        Raises:
            Exception: Any exception marks the scrape as failed for this
                source. Samples already emitted stay in the sink.
        """
        pass

    def metric_name(self, name: str) -> str:
        """Build a fully-qualified metric name."""
        return "_".join(part for part in (self.namespace, self.subsystem, name) if part)

    def sample(
        self,
        name: str,
        value: float,
        metric_type: MetricType = MetricType.GAUGE,
        labels: Optional[dict[str, str]] = None,
        documentation: str = "",
    ) -> MetricSample:
        """Create a sample named after this source, with constant labels merged in."""
        merged = dict(self.options.get("labels", {}))
        if labels:
            merged.update(labels)
        return MetricSample(
            name=self.metric_name(name),
            value=float(value),
            metric_type=metric_type,
            labels=merged,
            documentation=documentation,
        )
