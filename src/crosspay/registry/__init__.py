"""Network and asset registry."""

from crosspay.registry.registry import Registry, get_registry

__all__ = ["Registry", "get_registry"]
