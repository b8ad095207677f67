from __future__ import annotations

from typing import Callable

from feed_status.config import SourceSettings

from .base import Source

SourceFactory = Callable[[SourceSettings], Source]

_FACTORIES: dict[str, SourceFactory] = {}


class SourceRegistrationError(ValueError):
    """Raised for unknown or conflicting source types."""


def register_source(source_type: str) -> Callable[[SourceFactory], SourceFactory]:
    key = source_type.strip().lower()

    def decorator(factory: SourceFactory) -> SourceFactory:
        existing = _FACTORIES.get(key)
        if existing is not None and existing is not factory:
            raise SourceRegistrationError(f"Source type '{key}' is already registered")
        _FACTORIES[key] = factory
        return factory

    return decorator


def create_source(settings: SourceSettings) -> Source:
    factory = _FACTORIES.get(settings.type.strip().lower())
    if factory is None:
        available = ", ".join(registered_source_types()) or "none"
        raise SourceRegistrationError(
            f"Feed '{settings.id}' has unknown type '{settings.type}'. Known types: {available}"
        )
    return factory(settings)


def registered_source_types() -> list[str]:
    return sorted(_FACTORIES)
