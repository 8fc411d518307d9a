"""Connection store for integration_connections rows."""

from typing import Any, Dict, List, Optional
import logging

from integrations_console.core.backend import BackendClient, TABLES, unwrap_envelope
from integrations_console.core.cache import QueryCache
from integrations_console.core.exceptions import BackendError, UnknownResponseShape, ValidationError
from integrations_console.models import ConnectionStatus, IntegrationConnection
from integrations_console.services.mutations import MutationTracker, merge_deep, mutation_tracker

logger = logging.getLogger(__name__)

# Outcome strings reported by integration-sync and mapped onto connection status.
SYNC_OUTCOMES: Dict[str, ConnectionStatus] = {
    "success": ConnectionStatus.ACTIVE,
    "completed": ConnectionStatus.ACTIVE,
    "started": ConnectionStatus.ACTIVE,
    "queued": ConnectionStatus.ACTIVE,
    "running": ConnectionStatus.ACTIVE,
    "active": ConnectionStatus.ACTIVE,
    "failed": ConnectionStatus.ERROR,
    "error": ConnectionStatus.ERROR,
    "inactive": ConnectionStatus.INACTIVE,
    "disabled": ConnectionStatus.INACTIVE,
    "paused": ConnectionStatus.INACTIVE,
    "pending": ConnectionStatus.PENDING,
}


def derive_connection_status(outcome: Optional[str]) -> ConnectionStatus:
    """Map a sync or test outcome onto a connection status."""
    status = SYNC_OUTCOMES.get((outcome or "").lower())
    if status is None:
        raise UnknownResponseShape(f"Unrecognised sync outcome: {outcome!r}", raw=outcome)
    return status


class ConnectionStore:
    """Typed access to integration connections."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        tracker: MutationTracker = mutation_tracker,
    ):
        self.backend = backend
        self.cache = cache
        self.tracker = tracker

    def _to_model(self, row: Dict[str, Any]) -> IntegrationConnection:
        row = self.tracker.view(f"disconnect:{row.get('id')}", row)
        row = self.tracker.view(f"configure:{row.get('id')}", row)
        return IntegrationConnection(**row)

    async def list_connections(
        self,
        user_id: Optional[str] = None,
        status: Optional[ConnectionStatus] = None,
    ) -> List[IntegrationConnection]:
        """List connections, newest first."""
        filters: Dict[str, Any] = {}
        if user_id:
            filters["user_id"] = user_id
        if status:
            filters["connection_status"] = status.value

        key = f"connections:{user_id or 'all'}:{status.value if status else 'any'}"
        rows = await self.cache.get_or_fetch(
            key,
            lambda: self.backend.select(TABLES["connections"], filters, order="created_at.desc"),
        )
        return [self._to_model(row) for row in rows]

    async def get_connection(self, connection_id: str) -> Optional[IntegrationConnection]:
        """Get a connection by ID."""
        rows = await self.backend.select(TABLES["connections"], {"id": connection_id}, limit=1)
        return self._to_model(rows[0]) if rows else None

    async def update_configuration(
        self,
        connection_id: str,
        patch: Dict[str, Any],
    ) -> Optional[IntegrationConnection]:
        """Merge ``patch`` into the connection's configuration."""
        if not patch:
            raise ValidationError("Configuration update is empty")

        current = await self.get_connection(connection_id)
        if current is None:
            raise ValidationError(f"Connection {connection_id} not found")

        configuration = merge_deep(current.configuration, patch)
        async with self.tracker.track(
            f"configure:{connection_id}",
            overlay={"configuration": configuration},
        ):
            result = await self.backend.rpc(
                "integration_framework_update_connection",
                {"connection_id": connection_id, "updates": {"configuration": configuration}},
            )
            unwrap_envelope(result, "Failed to update connection")

        await self.cache.invalidate("connections", "registry")
        logger.info(f"Updated configuration for connection {connection_id}")
        return await self.get_connection(connection_id)

    async def delete_connection(self, connection_id: str) -> None:
        """Delete the connection row through the framework RPC."""
        async with self.tracker.track(f"disconnect:{connection_id}", overlay={"connection_status": "inactive"}):
            result = await self.backend.rpc(
                "integration_framework_delete_connection",
                {"connection_id": connection_id},
            )
            unwrap_envelope(result, "Failed to disconnect integration")

        await self.cache.invalidate("connections", "registry")
        logger.info(f"Deleted connection {connection_id}")

    async def disconnect(self, connection_id: str) -> None:
        """Disconnect and have the backend revoke upstream tokens."""
        async with self.tracker.track(f"disconnect:{connection_id}", overlay={"connection_status": "inactive"}):
            result = await self.backend.invoke("integration-disconnect", {"connection_id": connection_id})
            if not isinstance(result, dict) or not result.get("success"):
                message = result.get("error") if isinstance(result, dict) else None
                raise BackendError(message or "Failed to disconnect integration", details={"response": result})

        await self.cache.invalidate("connections", "registry")
        logger.info(f"Disconnected connection {connection_id}")

    async def sync(self, connection_id: str) -> ConnectionStatus:
        """Start a sync and return the connection status it implies."""
        async with self.tracker.track(f"sync:{connection_id}"):
            result = await self.backend.invoke("integration-sync", {"connection_id": connection_id})
            if not isinstance(result, dict) or "status" not in result:
                raise UnknownResponseShape("integration-sync answered without a status", raw=result)
            status = derive_connection_status(result["status"])

        await self.cache.invalidate("connections", "registry")
        logger.info(f"Sync for connection {connection_id} reported {result['status']}")
        return status
