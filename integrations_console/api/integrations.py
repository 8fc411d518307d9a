"""Integration management API endpoints."""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from typing import Optional
import logging

from integrations_console.core.exceptions import BackendError, UnknownResponseShape
from integrations_console.models import (
    ConnectionHealth,
    ConnectionStatus,
    IntegrationCategory,
    StatusSnapshot,
    SystemHealth,
)
from integrations_console.schemas.integration import (
    CatalogResponse,
    ConfigurationUpdate,
    ConnectionListResponse,
    ConnectionResponse,
    ConnectRequest,
    OAuthCallbackResponse,
    OAuthInitResponse,
    SyncResponse,
)
from integrations_console.services import (
    ConnectionStore,
    HealthAggregator,
    OAuthInitiator,
    classify_connection,
)
from integrations_console.api.dependencies import (
    get_connection_store,
    get_current_user,
    get_health_aggregator,
    get_oauth_initiator,
    require_confirmation,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/catalog", response_model=CatalogResponse)
async def get_catalog(
    category: Optional[IntegrationCategory] = None,
    search: Optional[str] = None,
    current_user=Depends(get_current_user),
    aggregator: HealthAggregator = Depends(get_health_aggregator),
):
    """List available integrations, overlaid with the backend registry."""
    try:
        await aggregator.registry_data()
    except (BackendError, UnknownResponseShape) as e:
        logger.warning(f"Serving static catalog, registry unavailable: {e.message}")

    if search:
        items = aggregator.catalog.search(search)
    elif category:
        items = aggregator.catalog.by_category(category)
    else:
        items = aggregator.catalog.all()

    return CatalogResponse(items=items, total=len(items), stats=aggregator.catalog.stats())


@router.get("/connections", response_model=ConnectionListResponse)
async def list_connections(
    status: Optional[ConnectionStatus] = None,
    current_user=Depends(get_current_user),
    store: ConnectionStore = Depends(get_connection_store),
):
    """List the user's connections."""
    connections = await store.list_connections(user_id=current_user["id"], status=status)
    return ConnectionListResponse(
        items=[ConnectionResponse.from_connection(c, classify_connection(c)) for c in connections],
        total=len(connections),
    )


@router.patch("/connections/{connection_id}", response_model=ConnectionResponse)
async def update_connection(
    connection_id: str,
    update: ConfigurationUpdate,
    current_user=Depends(get_current_user),
    store: ConnectionStore = Depends(get_connection_store),
):
    """Merge a configuration patch into a connection."""
    connection = await store.update_configuration(connection_id, update.configuration)
    return ConnectionResponse.from_connection(connection, classify_connection(connection))


@router.post("/connections/{connection_id}/sync", response_model=SyncResponse)
async def sync_connection(
    connection_id: str,
    current_user=Depends(get_current_user),
    store: ConnectionStore = Depends(get_connection_store),
):
    """Start a sync for a connection."""
    connection_status = await store.sync(connection_id)
    return SyncResponse(connection_id=connection_id, status=connection_status)


@router.delete("/connections/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(
    connection_id: str,
    revoke: bool = Query(False, description="Also revoke the provider's tokens"),
    confirmed: bool = Depends(require_confirmation),
    current_user=Depends(get_current_user),
    store: ConnectionStore = Depends(get_connection_store),
):
    """Disconnect an integration."""
    if revoke:
        await store.disconnect(connection_id)
    else:
        await store.delete_connection(connection_id)


@router.post("/{integration_id}/connect")
async def connect_integration(
    integration_id: str,
    request: Optional[ConnectRequest] = None,
    as_json: bool = Query(False, alias="json"),
    current_user=Depends(get_current_user),
    initiator: OAuthInitiator = Depends(get_oauth_initiator),
):
    """Start an OAuth flow; redirects to the provider unless JSON is requested."""
    auth_url = await initiator.initiate(integration_id, request.redirect_url if request else None)
    if as_json:
        return OAuthInitResponse(auth_url=auth_url)
    return RedirectResponse(auth_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/oauth/callback", response_model=OAuthCallbackResponse)
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    integration_id: Optional[str] = None,
    error: Optional[str] = None,
    current_user=Depends(get_current_user),
    initiator: OAuthInitiator = Depends(get_oauth_initiator),
):
    """Complete an OAuth flow with the provider's callback parameters."""
    result = await initiator.complete_callback(code, state, integration_id, error)
    return OAuthCallbackResponse(
        integration_name=result["integration_name"],
        connection_name=result["connection_name"],
        message=f"Successfully connected {result['connection_name']}",
    )


@router.get("/status", response_model=StatusSnapshot)
async def get_status(
    current_user=Depends(get_current_user),
    aggregator: HealthAggregator = Depends(get_health_aggregator),
):
    """Summary counts of connections and webhook success rates."""
    return await aggregator.snapshot()


@router.get("/health", response_model=SystemHealth)
async def get_system_health(
    current_user=Depends(get_current_user),
    aggregator: HealthAggregator = Depends(get_health_aggregator),
):
    """Health aggregated over active connections."""
    return await aggregator.system_health()


@router.get("/health/{connection_id}", response_model=ConnectionHealth)
async def get_connection_health(
    connection_id: str,
    current_user=Depends(get_current_user),
    aggregator: HealthAggregator = Depends(get_health_aggregator),
):
    """Backend-computed health of one connection."""
    return await aggregator.connection_health(connection_id)
