"""Integration catalog registry."""

from .registry import IntegrationRegistry, integration_registry

__all__ = [
    "IntegrationRegistry",
    "integration_registry",
]
