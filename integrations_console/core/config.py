"""Configuration settings for the integrations console service."""

from typing import Optional, Dict, Any
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Service Configuration
    service_name: str = "integrations-console"
    port: int = 8000
    environment: str = "development"
    debug: bool = False

    # Managed backend (REST, RPC, auth and serverless functions)
    backend_url: str = "http://localhost:54321"
    backend_api_key: Optional[str] = None
    backend_timeout: float = 30.0

    # Query cache
    redis_url: str = "redis://localhost:6379"
    cache_ttl: int = 30  # seconds, matches the health poll interval

    # Polling
    health_poll_interval: int = 30

    # Optimistic mutations
    mutation_overlay_ttl: int = 30  # seconds a confirmed overlay masks stale reads
    mutation_history_size: int = 256

    # Unacknowledged API key secrets are forgotten after this many seconds
    api_key_reveal_ttl: int = 600

    # OAuth redirect target handed to integration-connect
    app_origin: str = "http://localhost:3000"

    # GDPR
    deletion_grace_days: int = 30

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Static integration catalog. The registry RPC may overlay these entries.
INTEGRATION_CATALOG: Dict[str, Dict[str, Any]] = {
    "zoom": {
        "name": "Zoom",
        "description": "Import meeting recordings and transcripts from Zoom",
        "version": "1.0.0",
        "category": "communication",
        "auth_type": "oauth2",
        "required_fields": ["client_id", "client_secret"],
        "optional_fields": ["webhook_secret"],
        "capabilities": [
            {
                "type": "import",
                "name": "Recording import",
                "description": "Fetch cloud recordings and transcripts",
                "data_types": ["recording", "transcript"],
            },
            {
                "type": "webhook",
                "name": "Meeting events",
                "description": "Receive recording.completed events",
                "data_types": ["meeting"],
            },
        ],
        "webhook_support": True,
        "sync_frequency_minutes": 60,
    },
    "zapier": {
        "name": "Zapier",
        "description": "Push analysis results to thousands of apps through Zapier",
        "version": "1.0.0",
        "category": "other",
        "auth_type": "api_key",
        "required_fields": [],
        "optional_fields": [],
        "capabilities": [
            {
                "type": "webhook",
                "name": "Triggers",
                "description": "Deliver analysis events to Zapier webhooks",
                "data_types": ["analysis", "deal"],
            },
            {
                "type": "export",
                "name": "Analysis export",
                "description": "Expose analysis data to Zapier actions",
                "data_types": ["analysis"],
            },
        ],
        "webhook_support": True,
        "sync_frequency_minutes": None,
    },
    "slack": {
        "name": "Slack",
        "description": "Post analysis summaries to Slack channels",
        "version": "1.0.0",
        "category": "communication",
        "auth_type": "oauth2",
        "required_fields": ["client_id", "client_secret"],
        "optional_fields": ["default_channel"],
        "capabilities": [
            {
                "type": "export",
                "name": "Channel notifications",
                "description": "Send completed analyses to a channel",
                "data_types": ["analysis"],
            },
        ],
        "webhook_support": False,
        "sync_frequency_minutes": None,
    },
    "salesforce": {
        "name": "Salesforce",
        "description": "Sync deal intelligence with Salesforce opportunities",
        "version": "1.0.0",
        "category": "crm",
        "auth_type": "oauth2",
        "required_fields": ["client_id", "client_secret"],
        "optional_fields": ["instance_url"],
        "capabilities": [
            {
                "type": "bidirectional",
                "name": "Opportunity sync",
                "description": "Keep opportunities and contacts in step",
                "data_types": ["opportunity", "contact"],
            },
        ],
        "webhook_support": False,
        "sync_frequency_minutes": 30,
    },
    "hubspot": {
        "name": "HubSpot",
        "description": "Sync deal intelligence with HubSpot deals",
        "version": "1.0.0",
        "category": "crm",
        "auth_type": "oauth2",
        "required_fields": ["client_id", "client_secret"],
        "optional_fields": [],
        "capabilities": [
            {
                "type": "sync",
                "name": "Deal sync",
                "description": "Update deal stages from analyses",
                "data_types": ["deal", "contact"],
            },
        ],
        "webhook_support": True,
        "sync_frequency_minutes": 30,
    },
}
