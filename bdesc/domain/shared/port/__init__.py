"""Base type for domain ports (interfaces implemented by infrastructure adapters)."""

from typing import Protocol


class Port(Protocol):
    """Marker for interfaces the domain depends on."""
