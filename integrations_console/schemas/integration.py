"""Integration API schemas."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field

from integrations_console.models import ConnectionStatus, IntegrationConfig, IntegrationConnection


class CatalogResponse(BaseModel):
    """Catalog entries with registry stats."""
    items: List[IntegrationConfig]
    total: int
    stats: Dict[str, Any] = Field(default_factory=dict)


class ConnectionResponse(BaseModel):
    """A connection as returned to the console. Credentials never leave."""
    id: str
    integration_id: str
    user_id: str
    connection_name: str
    status: ConnectionStatus
    configuration: Dict[str, Any] = Field(default_factory=dict)
    last_sync_at: Optional[datetime] = None
    last_error: Optional[str] = None
    error_count: int = 0
    health: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_connection(cls, connection: IntegrationConnection, health: str) -> "ConnectionResponse":
        return cls(**connection.model_dump(exclude={"credentials"}), health=health)


class ConnectionListResponse(BaseModel):
    """List of connections response."""
    items: List[ConnectionResponse]
    total: int


class ConfigurationUpdate(BaseModel):
    """Partial configuration to merge into a connection."""
    configuration: Dict[str, Any]


class ConnectRequest(BaseModel):
    """OAuth initiation request."""
    redirect_url: Optional[str] = None


class OAuthInitResponse(BaseModel):
    """OAuth initiation response."""
    auth_url: str


class OAuthCallbackResponse(BaseModel):
    """OAuth callback outcome."""
    integration_name: str
    connection_name: str
    message: str


class SyncResponse(BaseModel):
    """Sync start response."""
    connection_id: str
    status: ConnectionStatus
    started_at: datetime = Field(default_factory=datetime.utcnow)
