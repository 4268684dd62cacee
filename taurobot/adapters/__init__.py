"""Per-source HTML extractors, registered by source key."""

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from taurobot.core.extraction import BaseExtractor

# Registry of all available extractors
ADAPTER_REGISTRY: dict[str, type["BaseExtractor"]] = {}

# Flag to prevent circular imports during loading
_adapters_loaded = False


def register_adapter(source_key: str) -> Callable[[type["BaseExtractor"]], type["BaseExtractor"]]:
    """Decorator to register an extractor in the registry.

    Usage:
        @register_adapter("servitoro")
        class ServitoroExtractor(BaseExtractor[CalendarEvent]):
            ...
    """

    def decorator(extractor_class: type["BaseExtractor"]) -> type["BaseExtractor"]:
        extractor_class.source_key = source_key
        ADAPTER_REGISTRY[source_key] = extractor_class
        return extractor_class

    return decorator


def get_adapter(source_key: str) -> type["BaseExtractor"] | None:
    """Get an extractor class by its source key."""
    _ensure_adapters_loaded()
    return ADAPTER_REGISTRY.get(source_key)


def list_adapters() -> list[str]:
    """List all registered source keys."""
    _ensure_adapters_loaded()
    return list(ADAPTER_REGISTRY.keys())


def _ensure_adapters_loaded() -> None:
    """Import extractor modules so their decorators run."""
    global _adapters_loaded
    if _adapters_loaded:
        return
    _adapters_loaded = True

    from taurobot.adapters import desdelcallejon  # noqa: F401
    from taurobot.adapters import elmuletazo  # noqa: F401
    from taurobot.adapters import mundotoro  # noqa: F401
    from taurobot.adapters import servitoro  # noqa: F401
