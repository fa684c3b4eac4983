"""Helios Exporter CLI - serve metrics from pluggable sources."""

import logging
import sys
from dataclasses import replace
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .collector import ExporterCollector, ScrapeOutcome
from .config import LOG_LEVELS, ExporterConfig, load_config, parse_listen_address
from .errors import ExporterError
from .sources import MetricSample, MetricSink, SourceRegistry, register_builtin_sources
from .sources.system import BUILTIN_SOURCES

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def build_collector(config: ExporterConfig, registry: Optional[SourceRegistry] = None) -> ExporterCollector:
    """
    Build the collector for the enabled sources.

    Raises:
        SourceNotAvailableError: An enabled source isn't registered
        SourceBuildError: A source failed to initialize
    """
    if registry is None:
        registry = SourceRegistry()
        register_builtin_sources(registry, config.source_options, config.namespace)

    sources = registry.build(config.sources)
    return ExporterCollector(sources, namespace=config.namespace, scrape_timeout=config.scrape_timeout)


def _load(config_path: Optional[str], **overrides) -> ExporterConfig:
    """Load config and apply command line overrides, exiting on error."""
    try:
        config = load_config(config_path)
        return replace(config, **{k: v for k, v in overrides.items() if v})
    except ExporterError as e:
        logger.critical(f"Couldn't load configuration: {e}")
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="helios-exporter")
def main():
    """Helios Exporter - Prometheus metrics from pluggable sources."""
    pass


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
@click.option(
    "--web.listen-address", "listen_address",
    help="Address to use to expose metrics, e.g. :9999",
)
@click.option("--web.telemetry-path", "metrics_path", help="Path to use to expose metrics")
@click.option("--source", "-s", "sources", multiple=True, help="Source to enable (repeatable)")
@click.option("--scrape-timeout", type=float, help="Per-source scrape timeout in seconds")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level")
def run(
    config_path: Optional[str],
    listen_address: Optional[str],
    metrics_path: Optional[str],
    sources: tuple[str, ...],
    scrape_timeout: Optional[float],
    log_level: Optional[str],
):
    """Serve metrics over HTTP."""
    import uvicorn

    from .app import create_app
    from .metrics import ExporterMetrics

    setup_logging(log_level or "INFO")

    config = _load(
        config_path,
        listen_address=listen_address,
        metrics_path=metrics_path,
        sources=list(sources),
        scrape_timeout=scrape_timeout,
        log_level=log_level and log_level.upper(),
    )
    logging.getLogger().setLevel(config.log_level)

    logger.info(f"Starting helios-exporter {__version__}")

    try:
        collector = build_collector(config)
    except ExporterError as e:
        logger.critical(f"Couldn't load sources: {e}")
        sys.exit(1)

    logger.info("Enabled sources:")
    for name in collector.sources:
        logger.info(f" - {name}")

    app = create_app(ExporterMetrics(collector, namespace=config.namespace), config)
    host, port = parse_listen_address(config.listen_address)

    logger.info(f"Listening on {config.listen_address}")
    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
@click.option("--source", "-s", "sources", multiple=True, help="Source to enable (repeatable)")
@click.option("--scrape-timeout", type=float, help="Per-source scrape timeout in seconds")
def collect(config_path: Optional[str], sources: tuple[str, ...], scrape_timeout: Optional[float]):
    """Run one scrape and print the results. Exits 1 if any source failed."""
    setup_logging("WARNING")
    config = _load(config_path, sources=list(sources), scrape_timeout=scrape_timeout)

    try:
        collector = build_collector(config)
    except ExporterError as e:
        console.print(f"[red]x Couldn't load sources: {e}[/red]")
        sys.exit(1)

    sink = MetricSink()
    outcomes = collector.run_scrape(sink)

    _display_samples(sink.samples())
    _display_outcomes(outcomes)

    if not all(outcome.success for outcome in outcomes):
        sys.exit(1)


def _display_samples(samples: list[MetricSample]):
    """Display collected samples in a table."""
    if not samples:
        console.print("[yellow]No metrics collected[/yellow]")
        return

    table = Table(title=f"Collected {len(samples)} Metrics")
    table.add_column("Name", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Type", style="green")
    table.add_column("Labels", style="dim")

    for sample in samples[:50]:  # Show first 50
        labels_str = ", ".join(f"{k}={v}" for k, v in sample.labels.items())
        table.add_row(sample.name, f"{sample.value:g}", sample.metric_type.value, labels_str)

    console.print(table)

    if len(samples) > 50:
        console.print(f"[dim]... and {len(samples) - 50} more metrics[/dim]")


def _display_outcomes(outcomes: list[ScrapeOutcome]):
    """Display per-source scrape results."""
    for outcome in outcomes:
        if outcome.success:
            console.print(f"  [green]+ {outcome.source}: {outcome.duration * 1000:.1f}ms[/green]")
        else:
            console.print(
                f"  [red]x {outcome.source}: failed after {outcome.duration * 1000:.1f}ms: "
                f"{outcome.error}[/red]"
            )


@main.command()
@click.option("--config", "-c", "config_path", help="Path to config file")
def sources(config_path: Optional[str]):
    """List available metrics sources."""
    config = _load(config_path)

    table = Table(title="Available Metrics Sources", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Enabled", justify="center")

    for name, source_class in BUILTIN_SOURCES.items():
        enabled = "[green]+" if name in config.sources else "[dim]-"
        table.add_row(name, source_class.description, enabled)

    console.print(table)


SAMPLE_CONFIG = """# Helios Exporter Configuration

web:
  listen_address: ":9999"
  telemetry_path: /metrics

# Sources to enable, scraped concurrently on every request
sources:
  - cpu
  - memory
  - disk
  - network
  - load

# Per-source options
source_options:
  cpu:
    interval: 0.1
    per_cpu: false
  disk:
    all_partitions: false
  network:
    per_nic: false
  # memory:
  #   labels:
  #     role: database

# Give up on a source after this many seconds (unset = wait forever)
# scrape_timeout: 10

log_level: INFO
"""


@main.command()
@click.option("--output", "-o", type=click.Path(), help="Output file path")
def init(output: Optional[str]):
    """Generate a sample configuration file."""
    output_path = output or "helios-exporter.yaml"

    with open(output_path, "w") as f:
        f.write(SAMPLE_CONFIG)

    console.print(f"[green]+ Created config file: {output_path}[/green]")
    console.print("\nEdit the file to choose your sources, then run:")
    console.print(f"  [cyan]helios-exporter run -c {output_path}[/cyan]")


if __name__ == "__main__":
    main()
