"""System metrics sources - host-level metrics via psutil."""

import asyncio
import logging

import psutil

from ..errors import SourceError
from .base import MetricsSource, MetricSink, MetricType

logger = logging.getLogger(__name__)


class CPUSource(MetricsSource):
    """
    CPU utilization and time spent per mode.

    Options:
        interval: float - Sampling interval for utilization in seconds (default: 0.1)
        per_cpu: bool - Also emit per-core utilization (default: False)
    """

    subsystem = "cpu"
    description = "CPU utilization, core count and time per mode"

    async def update(self, sink: MetricSink) -> None:
        interval = self.options.get("interval", 0.1)
        per_cpu = self.options.get("per_cpu", False)

        cpu_percent = await asyncio.to_thread(psutil.cpu_percent, interval)
        sink.emit(self.sample(
            "utilization",
            cpu_percent / 100.0,
            documentation="Overall CPU utilization ratio.",
        ))

        if per_cpu:
            per_cpu_percent = psutil.cpu_percent(interval=None, percpu=True)
            for i, pct in enumerate(per_cpu_percent):
                sink.emit(self.sample(
                    "core_utilization",
                    pct / 100.0,
                    labels={"cpu": str(i)},
                    documentation="Per-core CPU utilization ratio.",
                ))

        sink.emit(self.sample(
            "count",
            psutil.cpu_count() or 0,
            documentation="Number of logical CPUs.",
        ))

        times = psutil.cpu_times()
        for mode in ("user", "system", "idle", "iowait"):
            if hasattr(times, mode):
                sink.emit(self.sample(
                    "seconds_total",
                    getattr(times, mode),
                    metric_type=MetricType.COUNTER,
                    labels={"mode": mode},
                    documentation="Seconds the CPUs spent in each mode.",
                ))


class MemorySource(MetricsSource):
    """Virtual memory and swap usage."""

    subsystem = "memory"
    description = "Virtual memory and swap usage"

    async def update(self, sink: MetricSink) -> None:
        mem = await asyncio.to_thread(psutil.virtual_memory)

        sink.emit(self.sample(
            "utilization",
            mem.percent / 100.0,
            documentation="Memory utilization ratio.",
        ))
        for kind in ("total", "available", "used"):
            sink.emit(self.sample(
                "bytes",
                getattr(mem, kind),
                labels={"type": kind},
                documentation="Virtual memory in bytes.",
            ))

        swap = await asyncio.to_thread(psutil.swap_memory)
        for kind in ("total", "used"):
            sink.emit(self.sample(
                "swap_bytes",
                getattr(swap, kind),
                labels={"type": kind},
                documentation="Swap memory in bytes.",
            ))


class DiskSource(MetricsSource):
    """
    Usage of mounted partitions.

    Options:
        all_partitions: bool - Include pseudo and duplicate filesystems (default: False)
    """

    subsystem = "disk"
    description = "Usage of mounted partitions"

    async def update(self, sink: MetricSink) -> None:
        await asyncio.to_thread(self._collect, sink)

    def _collect(self, sink: MetricSink):
        partitions = psutil.disk_partitions(all=self.options.get("all_partitions", False))

        for partition in partitions:
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug(f"Skipping {partition.mountpoint}: {e}")
                continue

            labels = {"device": partition.device, "mountpoint": partition.mountpoint}
            sink.emit(self.sample(
                "utilization",
                usage.percent / 100.0,
                labels=labels,
                documentation="Partition utilization ratio.",
            ))
            sink.emit(self.sample(
                "size_bytes",
                usage.total,
                labels=labels,
                documentation="Partition size in bytes.",
            ))
            sink.emit(self.sample(
                "free_bytes",
                usage.free,
                labels=labels,
                documentation="Free space on the partition in bytes.",
            ))


class NetworkSource(MetricsSource):
    """
    Network I/O counters.

    Options:
        per_nic: bool - Emit counters per interface instead of totals (default: False)
    """

    subsystem = "network"
    description = "Network bytes and packets sent and received"

    async def update(self, sink: MetricSink) -> None:
        per_nic = self.options.get("per_nic", False)
        counters = await asyncio.to_thread(psutil.net_io_counters, per_nic)

        if counters is None:
            raise SourceError("no network interfaces found")

        if per_nic:
            for interface, io in counters.items():
                self._emit(sink, io, {"interface": interface})
        else:
            self._emit(sink, counters, {})

    def _emit(self, sink: MetricSink, io, labels: dict[str, str]):
        for field_name, name in (
            ("bytes_recv", "received_bytes_total"),
            ("bytes_sent", "sent_bytes_total"),
            ("packets_recv", "received_packets_total"),
            ("packets_sent", "sent_packets_total"),
        ):
            sink.emit(self.sample(
                name,
                getattr(io, field_name),
                metric_type=MetricType.COUNTER,
                labels=labels,
                documentation=f"Network {name.replace('_total', '').replace('_', ' ')}.",
            ))


class LoadSource(MetricsSource):
    """System load averages."""

    subsystem = "load"
    description = "1, 5 and 15 minute load averages"

    async def update(self, sink: MetricSink) -> None:
        try:
            load1, load5, load15 = await asyncio.to_thread(psutil.getloadavg)
        except (AttributeError, OSError) as e:
            raise SourceError(f"load average unavailable: {e}") from e

        for name, value in (("1m", load1), ("5m", load5), ("15m", load15)):
            sink.emit(self.sample(
                f"average_{name}",
                value,
                documentation=f"{name} load average.",
            ))


BUILTIN_SOURCES: dict[str, type[MetricsSource]] = {
    "cpu": CPUSource,
    "memory": MemorySource,
    "disk": DiskSource,
    "network": NetworkSource,
    "load": LoadSource,
}
