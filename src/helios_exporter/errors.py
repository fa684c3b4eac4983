"""Exception hierarchy for Helios Exporter."""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Invalid or unreadable exporter configuration."""


class SourceError(ExporterError):
    """A source failed to produce its metrics for the current scrape."""


class RegistryError(ExporterError):
    """Base class for source registry errors. Carries the offending name."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class DuplicateSourceError(RegistryError):
    def __init__(self, name: str):
        super().__init__(name, f"source {name!r} is already registered")


class SourceNotAvailableError(RegistryError):
    def __init__(self, name: str):
        super().__init__(name, f"source {name!r} not available")


class SourceBuildError(RegistryError):
    def __init__(self, name: str, cause: Exception):
        super().__init__(name, f"couldn't build source {name!r}: {cause}")
        self.cause = cause
