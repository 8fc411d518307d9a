"""API dependencies."""

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Dict, Any
import httpx
import logging

from integrations_console.core.backend import BackendClient, backend
from integrations_console.core.cache import QueryCache, query_cache
from integrations_console.core.exceptions import AuthorizationError, BackendError, ValidationError
from integrations_console.services import (
    ApiKeyManager,
    BulkDeletionService,
    ConnectionStore,
    ConnectionTestRunner,
    HealthAggregator,
    MutationTracker,
    OAuthInitiator,
    WebhookManager,
    mutation_tracker,
)

logger = logging.getLogger(__name__)

# Security
security = HTTPBearer()


async def get_access_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    return credentials.credentials


async def get_current_user(token: str = Depends(get_access_token)) -> Dict[str, Any]:
    """Resolve the bearer token to the backend's user record."""
    try:
        return await backend.get_user(token)
    except BackendError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except httpx.RequestError as e:
        logger.error(f"Auth request failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable"
        )


async def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Only admins may run GDPR operations."""
    role = current_user.get("role")
    app_metadata = current_user.get("app_metadata") or {}
    if "admin" not in (role, app_metadata.get("role")):
        raise AuthorizationError("Administrator access required")
    return current_user


def require_confirmation(confirm: bool = Query(False, description="Must be true for destructive operations")) -> bool:
    """Refuse destructive requests that were not explicitly confirmed."""
    if not confirm:
        raise ValidationError("This action cannot be undone. Repeat the request with confirm=true.")
    return True


# Per-user backend, cache and mutation tracker views
def get_user_backend(token: str = Depends(get_access_token)) -> BackendClient:
    return backend.with_token(token)


def get_user_cache(current_user: Dict[str, Any] = Depends(get_current_user)) -> QueryCache:
    return query_cache.scoped(current_user["id"])


def get_user_tracker(current_user: Dict[str, Any] = Depends(get_current_user)) -> MutationTracker:
    return mutation_tracker.scoped(current_user["id"])


# Service dependencies
def get_connection_store(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
    tracker: MutationTracker = Depends(get_user_tracker),
) -> ConnectionStore:
    """Get connection store instance."""
    return ConnectionStore(user_backend, cache, tracker)


def get_oauth_initiator(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
) -> OAuthInitiator:
    return OAuthInitiator(user_backend, cache)


def get_api_key_manager(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
    tracker: MutationTracker = Depends(get_user_tracker),
    current_user: Dict[str, Any] = Depends(get_current_user),
) -> ApiKeyManager:
    """Get API key manager instance."""
    return ApiKeyManager(user_backend, cache, tracker, owner=current_user["id"])


def get_webhook_manager(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
    api_keys: ApiKeyManager = Depends(get_api_key_manager),
    tracker: MutationTracker = Depends(get_user_tracker),
) -> WebhookManager:
    """Get webhook manager instance."""
    return WebhookManager(user_backend, cache, api_keys, tracker)


def get_connection_test_runner(user_backend: BackendClient = Depends(get_user_backend)) -> ConnectionTestRunner:
    return ConnectionTestRunner(user_backend)


def get_health_aggregator(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
    store: ConnectionStore = Depends(get_connection_store),
) -> HealthAggregator:
    """Get health aggregator instance."""
    return HealthAggregator(user_backend, cache, store)


def get_bulk_deletion_service(
    user_backend: BackendClient = Depends(get_user_backend),
    cache: QueryCache = Depends(get_user_cache),
    tracker: MutationTracker = Depends(get_user_tracker),
) -> BulkDeletionService:
    return BulkDeletionService(user_backend, cache, tracker)
