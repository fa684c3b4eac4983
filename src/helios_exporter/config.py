"""Configuration management for Helios Exporter."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError
from .sources import NAMESPACE

DEFAULT_SOURCES = ["cpu", "memory", "disk", "network", "load"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
NAMESPACE_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@dataclass
class ExporterConfig:
    """Main exporter configuration."""

    # HTTP endpoint
    listen_address: str = ":9999"
    metrics_path: str = "/metrics"

    # Enabled sources, in order, and per-source options
    sources: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    source_options: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Exporter settings
    namespace: str = NAMESPACE
    scrape_timeout: Optional[float] = None  # seconds, per source
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.metrics_path.startswith("/"):
            raise ConfigError(f"metrics_path must start with '/': {self.metrics_path!r}")
        if self.metrics_path == "/":
            raise ConfigError("metrics_path can't be '/', it is used by the landing page")
        if not self.sources:
            raise ConfigError("at least one source must be enabled")
        if self.scrape_timeout is not None and self.scrape_timeout <= 0:
            raise ConfigError(f"scrape_timeout must be positive: {self.scrape_timeout}")
        if not NAMESPACE_RE.match(self.namespace):
            raise ConfigError(f"namespace must be a valid metric name prefix: {self.namespace!r}")
        for name, options in self.source_options.items():
            if options is not None and not isinstance(options, dict):
                raise ConfigError(f"options for source {name!r} must be a mapping, got {options!r}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}: {self.log_level!r}")
        parse_listen_address(self.listen_address)

    @classmethod
    def from_file(cls, path: str | Path) -> "ExporterConfig":
        """Load configuration from YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Couldn't read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "ExporterConfig":
        """Create config from dictionary."""
        defaults = cls()

        web = data.get("web") or {}
        if not isinstance(web, dict):
            raise ConfigError(f"web must be a mapping, got {web!r}")
        sources = data.get("sources", defaults.sources)
        if isinstance(sources, str):
            sources = _split_names(sources)
        if not isinstance(sources, list):
            raise ConfigError("sources must be a list of source names")

        source_options = data.get("source_options") or {}
        if not isinstance(source_options, dict):
            raise ConfigError("source_options must be a mapping of source name to options")

        return cls(
            listen_address=str(web.get("listen_address", defaults.listen_address)),
            metrics_path=str(web.get("telemetry_path", defaults.metrics_path)),
            sources=[str(s) for s in sources],
            source_options=source_options,
            namespace=str(data.get("namespace", defaults.namespace)),
            scrape_timeout=_to_float(data.get("scrape_timeout"), "scrape_timeout"),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
        )

    @classmethod
    def from_env(cls) -> "ExporterConfig":
        """Create config from environment variables."""
        defaults = cls()
        sources = os.environ.get("HELIOS_EXPORTER_SOURCES")

        return cls(
            listen_address=os.environ.get("HELIOS_EXPORTER_LISTEN_ADDRESS", defaults.listen_address),
            metrics_path=os.environ.get("HELIOS_EXPORTER_METRICS_PATH", defaults.metrics_path),
            sources=_split_names(sources) if sources else defaults.sources,
            scrape_timeout=_to_float(
                os.environ.get("HELIOS_EXPORTER_SCRAPE_TIMEOUT"), "HELIOS_EXPORTER_SCRAPE_TIMEOUT"
            ),
            log_level=os.environ.get("HELIOS_EXPORTER_LOG_LEVEL", defaults.log_level).upper(),
        )


def parse_listen_address(address: str) -> tuple[str, int]:
    """
    Split a listen address into host and port.

    An empty host (":9999") listens on all interfaces.
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"listen address must be [host]:port, got {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {address!r}") from None
    if not 0 < port_number < 65536:
        raise ConfigError(f"port out of range in listen address {address!r}")
    return host.strip("[]") or "0.0.0.0", port_number


def _split_names(value: str) -> list[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def _to_float(value: Any, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def load_config(config_path: Optional[str] = None) -> ExporterConfig:
    """Load configuration from file or environment."""
    # Explicit path must exist
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")
        return ExporterConfig.from_file(config_path)

    # Try default locations
    default_paths = [
        Path("helios-exporter.yaml"),
        Path("helios-exporter.yml"),
        Path.home() / ".helios" / "exporter.yaml",
        Path("/etc/helios/exporter.yaml"),
    ]

    for path in default_paths:
        if path.exists():
            return ExporterConfig.from_file(path)

    # Fall back to environment
    return ExporterConfig.from_env()
