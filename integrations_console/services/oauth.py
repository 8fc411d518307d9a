"""OAuth initiation and callback handling.

The code exchange and token storage happen in the backend's functions; this
module only starts the dance and reports how it ended.
"""

from typing import Any, Dict, Optional
import logging

from integrations_console.core.backend import BackendClient
from integrations_console.core.cache import QueryCache
from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import BackendError, IntegrationDisabled, NoAuthUrl, ValidationError
from integrations_console.integrations.registry import IntegrationRegistry, integration_registry

logger = logging.getLogger(__name__)
settings = get_settings()

# Phrases the connect function uses when an admin has not enabled the integration.
DISABLED_MARKERS = ("not enabled", "disabled", "not configured")


class OAuthInitiator:
    """Starts OAuth flows through the integration-connect function."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        registry: IntegrationRegistry = integration_registry,
    ):
        self.backend = backend
        self.cache = cache
        self.registry = registry

    async def initiate(self, integration_id: str, redirect_url: Optional[str] = None) -> str:
        """Return the authorization URL the browser should be sent to."""
        integration = self.registry.get(integration_id)
        if integration is not None and not integration.is_supported:
            raise IntegrationDisabled(f"{integration.name} has not been enabled by an administrator")

        body: Dict[str, Any] = {"integration_id": integration_id}
        body["redirect_url"] = redirect_url or f"{settings.app_origin}/admin"

        try:
            data = await self.backend.invoke("integration-connect", body)
        except BackendError as e:
            if any(marker in e.message.lower() for marker in DISABLED_MARKERS):
                raise IntegrationDisabled(e.message)
            raise

        auth_url = data.get("auth_url") if isinstance(data, dict) else None
        if not auth_url:
            raise NoAuthUrl("No authorization URL received", details={"response": data})

        logger.info(f"OAuth flow initiated for {integration_id}")
        return auth_url

    async def complete_callback(
        self,
        code: Optional[str],
        state: Optional[str],
        integration_id: Optional[str],
        error: Optional[str] = None,
    ) -> Dict[str, str]:
        """Hand the provider's callback parameters to the backend."""
        if error:
            raise ValidationError(f"OAuth error: {error}")
        if not code or not state or not integration_id:
            raise ValidationError("Missing required OAuth parameters")

        result = await self.backend.invoke(
            "integration-callback",
            {"code": code, "state": state, "integration_id": integration_id},
        )
        await self.cache.invalidate("connections", "registry")

        result = result if isinstance(result, dict) else {}
        logger.info(f"OAuth callback completed for {integration_id}")
        return {
            "integration_name": result.get("integration_name") or integration_id,
            "connection_name": result.get("connection_name") or "Integration",
        }
