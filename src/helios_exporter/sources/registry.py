"""Source registry - maps source names to the factories that build them."""

import logging
from typing import Callable, Iterable

from ..errors import DuplicateSourceError, SourceBuildError, SourceNotAvailableError
from .base import MetricsSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], MetricsSource]


class SourceRegistry:
    """
    Registry for metrics source factories.

    Sources register a zero-argument factory under a stable name during
    startup. The registry is then used to build the enabled sources and is
    not modified afterwards.
    """

    def __init__(self):
        self._factories: dict[str, SourceFactory] = {}

    def register(self, name: str, factory: SourceFactory):
        """Register a source factory. Each name can only be registered once."""
        if name in self._factories:
            raise DuplicateSourceError(name)
        self._factories[name] = factory
        logger.debug(f"Registered metrics source: {name}")

    def lookup(self, name: str) -> SourceFactory:
        """Get the factory registered under name."""
        try:
            return self._factories[name]
        except KeyError:
            raise SourceNotAvailableError(name) from None

    def build(self, names: Iterable[str]) -> dict[str, MetricsSource]:
        """
        Build a source instance for each requested name, in order.

        Any unknown name or failing factory aborts the whole batch; no
        partially built mapping is returned.

        Raises:
            SourceNotAvailableError: A name has no registered factory
            SourceBuildError: A factory raised while building its source
        """
        requested: list[str] = []
        for name in names:
            if name in requested:
                logger.warning(f"Source {name!r} requested more than once, ignoring duplicate")
                continue
            requested.append(name)

        # Resolve everything before constructing anything
        factories = [(name, self.lookup(name)) for name in requested]

        sources: dict[str, MetricsSource] = {}
        for name, factory in factories:
            try:
                sources[name] = factory()
            except Exception as e:
                raise SourceBuildError(name, e) from e
        return sources

    def names(self) -> list[str]:
        """List all registered source names."""
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)
