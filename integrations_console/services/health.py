"""Connection status and health aggregation."""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional
import asyncio
import logging

from integrations_console.core.backend import BackendClient, unwrap_envelope
from integrations_console.core.cache import QueryCache
from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import BackendError, UnknownResponseShape
from integrations_console.integrations.registry import IntegrationRegistry, integration_registry
from integrations_console.models import (
    ConnectionHealth,
    ConnectionStatus,
    HealthScore,
    IntegrationConnection,
    StatusSnapshot,
    SystemHealth,
)
from integrations_console.services.connection_store import ConnectionStore
from integrations_console.services.webhook_manager import success_rate

logger = logging.getLogger(__name__)
settings = get_settings()

# Errors in the last day above which an active connection is critical.
CRITICAL_ERROR_COUNT = 5


def classify_connection(connection: IntegrationConnection) -> str:
    """Health of a connection judged from its own row."""
    if connection.status == ConnectionStatus.ACTIVE and connection.error_count == 0:
        return "healthy"
    if connection.status == ConnectionStatus.ACTIVE and connection.error_count < CRITICAL_ERROR_COUNT:
        return "warning"
    return "critical"


def webhook_success_rates(registry_data: Dict[str, Any]) -> Dict[str, float]:
    """Per-integration rolling-day webhook success rates from the registry RPC."""
    integrations = registry_data.get("integrations") or {}
    if isinstance(integrations, list):
        integrations = {item.get("id"): item for item in integrations if isinstance(item, dict)}

    rates: Dict[str, float] = {}
    for integration_id, entry in integrations.items():
        stats = (entry or {}).get("webhook_stats") or {}
        successful = int(stats.get("successful_webhooks") or 0)
        failed = int(stats.get("failed_webhooks") or 0)
        rates[integration_id] = success_rate(successful, failed)
    return rates


class HealthAggregator:
    """Read-only status and health views over connections."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        store: ConnectionStore,
        registry: IntegrationRegistry = integration_registry,
    ):
        self.backend = backend
        self.cache = cache
        self.store = store
        self.registry = registry
        self.catalog = registry

    async def registry_data(self) -> Dict[str, Any]:
        """Fetch the backend's integration registry and overlay the catalog with it.

        The overlaid view is kept on ``self.catalog``; the shared registry is
        never modified.
        """
        data = await self.cache.get_or_fetch(
            "registry:data",
            lambda: self.backend.rpc("get_integration_registry"),
        )
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise UnknownResponseShape("Integration registry is not an object", raw=data)

        entries = data.get("integrations") or {}
        rows = list(entries.values()) if isinstance(entries, dict) else list(entries)
        self.catalog = self.registry.with_overlay([row for row in rows if isinstance(row, dict)])
        return data

    async def snapshot(self) -> StatusSnapshot:
        """Counts of connections by status plus webhook success rates."""
        connections = await self.store.list_connections()
        registry_data = await self.registry_data()

        counts = {status: 0 for status in ConnectionStatus}
        for connection in connections:
            counts[connection.status] += 1

        return StatusSnapshot(
            total=len(connections),
            active=counts[ConnectionStatus.ACTIVE],
            error=counts[ConnectionStatus.ERROR],
            inactive=counts[ConnectionStatus.INACTIVE],
            pending=counts[ConnectionStatus.PENDING],
            webhook_success_rates=webhook_success_rates(registry_data),
        )

    async def poll(self, interval: Optional[float] = None) -> AsyncIterator[StatusSnapshot]:
        """Yield a snapshot every ``interval`` seconds.

        A failed round is logged and skipped; the next one runs on schedule.
        """
        interval = interval if interval is not None else settings.health_poll_interval
        while True:
            try:
                yield await self.snapshot()
            except (BackendError, UnknownResponseShape) as e:
                logger.warning(f"Status poll failed: {e.message}")
            await asyncio.sleep(interval)

    async def connection_health(self, connection_id: str) -> ConnectionHealth:
        """Backend-computed health of one connection."""
        result = await self.backend.rpc(
            "integration_framework_get_connection_health",
            {"connection_id": connection_id},
        )
        data = unwrap_envelope(result, "Failed to load connection health")
        if not isinstance(data, dict):
            raise UnknownResponseShape("Connection health carries no data", raw=result)
        data.setdefault("connection_id", connection_id)
        return ConnectionHealth(**data)

    async def _health_or_none(self, connection_id: str) -> Optional[ConnectionHealth]:
        try:
            return await self.connection_health(connection_id)
        except (BackendError, UnknownResponseShape) as e:
            logger.warning(f"No health data for connection {connection_id}: {e.message}")
            return None

    async def system_health(self) -> SystemHealth:
        """Aggregate connection health across active connections."""
        connections = await self.store.list_connections(status=ConnectionStatus.ACTIVE)
        results = await asyncio.gather(*(self._health_or_none(c.id) for c in connections))
        health: List[ConnectionHealth] = [h for h in results if h is not None]

        total = len(health)
        healthy = sum(1 for h in health if h.health_score in (HealthScore.EXCELLENT, HealthScore.GOOD))
        return SystemHealth(
            total_connections=total,
            healthy_connections=healthy,
            warning_connections=sum(1 for h in health if h.health_score == HealthScore.WARNING),
            critical_connections=sum(1 for h in health if h.health_score == HealthScore.CRITICAL),
            average_health_score=(healthy / total) * 100 if total else 0.0,
            last_updated=datetime.utcnow(),
        )
