"""Integration catalog and connection models."""

from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field
from enum import Enum


class IntegrationCategory(str, Enum):
    """Catalog categories."""
    CRM = "crm"
    EMAIL = "email"
    CALENDAR = "calendar"
    STORAGE = "storage"
    COMMUNICATION = "communication"
    ANALYTICS = "analytics"
    OTHER = "other"


class AuthType(str, Enum):
    """How a user authenticates an integration."""
    OAUTH2 = "oauth2"
    API_KEY = "api_key"
    BASIC_AUTH = "basic_auth"
    CUSTOM = "custom"


class CapabilityType(str, Enum):
    """Declared integration capabilities."""
    SYNC = "sync"
    WEBHOOK = "webhook"
    EXPORT = "export"
    IMPORT = "import"
    BIDIRECTIONAL = "bidirectional"


class ConnectionStatus(str, Enum):
    """Integration connection status."""
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class IntegrationCapability(BaseModel):
    """A capability declared by a catalog entry."""
    type: CapabilityType
    name: str
    description: str = ""
    data_types: List[str] = Field(default_factory=list)


class IntegrationConfig(BaseModel):
    """Static catalog entry for one integration."""
    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    category: IntegrationCategory = IntegrationCategory.OTHER
    auth_type: AuthType
    required_fields: List[str] = Field(default_factory=list)
    optional_fields: List[str] = Field(default_factory=list)
    capabilities: List[IntegrationCapability] = Field(default_factory=list)
    webhook_support: bool = False
    sync_frequency_minutes: Optional[int] = None
    is_active: bool = True
    is_deprecated: bool = False

    class Config:
        frozen = True

    @property
    def is_supported(self) -> bool:
        return self.is_active and not self.is_deprecated

    def has_capability(self, capability: CapabilityType) -> bool:
        return any(cap.type == capability for cap in self.capabilities)


class IntegrationConnection(BaseModel):
    """One user's link to one integration.

    Field aliases follow the backend's column names. Credentials stay opaque
    and are excluded from every serialisation.
    """
    id: str
    integration_id: str = Field(alias="integration_type")
    user_id: str
    connection_name: str = ""
    status: ConnectionStatus = Field(default=ConnectionStatus.PENDING, alias="connection_status")
    credentials: Dict[str, Any] = Field(default_factory=dict, exclude=True)
    configuration: Dict[str, Any] = Field(default_factory=dict)
    last_sync_at: Optional[datetime] = None
    last_error: Optional[str] = None
    error_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        populate_by_name = True
