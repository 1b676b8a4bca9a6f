"""Explicit registry of IP source factories.

The host application creates a SourceRegistry at startup and registers
the sources it wants; nothing registers itself at import time.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List

import structlog

from ipsource.core.exceptions import SourceNotFoundError

log = structlog.get_logger(__name__)

SourceFactory = Callable[..., Any]


class SourceRegistry:
    """Registry mapping source IDs to factory callables."""

    def __init__(self) -> None:
        self._factories: Dict[str, SourceFactory] = {}

    def register(self, name: str, factory: SourceFactory) -> None:
        """Register a factory under a source ID.

        Raises:
            ValueError: If the name is empty or already registered.
        """
        if not name:
            raise ValueError("Source name cannot be empty")
        if name in self._factories:
            raise ValueError(f"IP source '{name}' is already registered")
        self._factories[name] = factory
        log.debug("ip_source_registered", name=name)

    def create(self, name: str, **kwargs: Any) -> Any:
        """Build a source instance via its registered factory.

        Raises:
            SourceNotFoundError: If no factory is registered under name.
        """
        try:
            factory = self._factories[name]
        except KeyError as e:
            raise SourceNotFoundError(name) from e
        return factory(**kwargs)

    def names(self) -> List[str]:
        """Return registered source IDs in registration order."""
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories
