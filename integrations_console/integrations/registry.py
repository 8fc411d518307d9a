"""Integration registry for catalog entries."""

from typing import Any, Dict, List, Optional
import logging

from integrations_console.core.config import INTEGRATION_CATALOG
from integrations_console.core.exceptions import ValidationError
from integrations_console.models import (
    CapabilityType,
    IntegrationCategory,
    IntegrationConfig,
)

logger = logging.getLogger(__name__)

INACTIVE_REGISTRY_STATUSES = ("disabled", "inactive", "unavailable")


class IntegrationRegistry:
    """Registry of the integrations the console knows about."""

    def __init__(self):
        self._integrations: Dict[str, IntegrationConfig] = {}

    def register(self, config: IntegrationConfig) -> None:
        if config.id in self._integrations:
            raise ValidationError(f"Integration with ID {config.id} already exists")
        self._integrations[config.id] = config

    def unregister(self, integration_id: str) -> None:
        if integration_id not in self._integrations:
            raise ValidationError(f"Integration with ID {integration_id} not found")
        del self._integrations[integration_id]

    def get(self, integration_id: str) -> Optional[IntegrationConfig]:
        return self._integrations.get(integration_id)

    def all(self) -> List[IntegrationConfig]:
        return list(self._integrations.values())

    def by_category(self, category: IntegrationCategory) -> List[IntegrationConfig]:
        return [i for i in self._integrations.values() if i.category == category]

    def active(self) -> List[IntegrationConfig]:
        return [i for i in self._integrations.values() if i.is_supported]

    def is_supported(self, integration_id: str) -> bool:
        integration = self.get(integration_id)
        return integration.is_supported if integration else False

    def has_capability(self, integration_id: str, capability: CapabilityType) -> bool:
        integration = self.get(integration_id)
        return integration.has_capability(capability) if integration else False

    def search(self, query: str) -> List[IntegrationConfig]:
        query = query.lower()
        return [
            i for i in self._integrations.values()
            if query in i.name.lower()
            or query in i.description.lower()
            or query in i.category.value
        ]

    def apply_overlay(self, rows: List[Dict[str, Any]]) -> None:
        """Overlay enabled/deprecated flags from the backend registry RPC.

        Rows name the integration by ``id`` or ``integration_id`` and carry
        either explicit flags or a ``status`` string; unknown ids are ignored.
        """
        for row in rows:
            integration_id = row.get("id") or row.get("integration_id")
            current = self._integrations.get(integration_id)
            if current is None:
                continue
            updates = {}
            if "is_active" in row or "is_enabled" in row:
                updates["is_active"] = bool(row.get("is_active", row.get("is_enabled")))
            elif "status" in row:
                updates["is_active"] = row["status"] not in INACTIVE_REGISTRY_STATUSES
            if "is_deprecated" in row:
                updates["is_deprecated"] = bool(row["is_deprecated"])
            elif row.get("status") == "deprecated":
                updates["is_deprecated"] = True
            if updates:
                self._integrations[integration_id] = current.model_copy(update=updates)

    def with_overlay(self, rows: List[Dict[str, Any]]) -> "IntegrationRegistry":
        """A copy of this registry with ``rows`` overlaid; this one is left as is."""
        overlaid = IntegrationRegistry()
        overlaid._integrations = dict(self._integrations)
        overlaid.apply_overlay(rows)
        return overlaid

    def stats(self) -> Dict[str, Any]:
        per_category: Dict[str, int] = {}
        for integration in self._integrations.values():
            per_category[integration.category.value] = per_category.get(integration.category.value, 0) + 1
        return {
            "total_integrations": len(self._integrations),
            "active_integrations": len(self.active()),
            "integrations_per_category": per_category,
        }

    @classmethod
    def from_catalog(cls, catalog: Optional[Dict[str, Dict[str, Any]]] = None) -> "IntegrationRegistry":
        """Build a registry from the static catalog."""
        registry = cls()
        for integration_id, entry in (catalog or INTEGRATION_CATALOG).items():
            registry.register(IntegrationConfig(id=integration_id, **entry))
        logger.debug("Loaded %d catalog entries", len(registry._integrations))
        return registry


# Registry built from the static catalog
integration_registry = IntegrationRegistry.from_catalog()
