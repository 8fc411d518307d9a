"""Zapier bridge models: API keys and webhook subscriptions."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from enum import Enum


class TriggerType(str, Enum):
    """Domain events a webhook can subscribe to."""
    ANALYSIS_COMPLETED = "analysis_completed"
    HOT_DEAL_IDENTIFIED = "hot_deal_identified"
    FOLLOW_UP_REQUIRED = "follow_up_required"
    PARTICIPANT_MATCHED = "participant_matched"
    DEAL_STAGE_CHANGED = "deal_stage_changed"


class ApiKeyScope(str, Enum):
    """Capabilities an API key can carry."""
    READ_ANALYSIS = "read:analysis"
    WEBHOOK_SUBSCRIBE = "webhook:subscribe"
    READ_TRANSCRIPTS = "read:transcripts"
    WRITE_CONTACTS = "write:contacts"


class ApiKey(BaseModel):
    """Stored API key metadata. Never holds the secret."""
    id: str
    user_id: Optional[str] = None
    key_name: str
    scopes: List[str] = Field(default_factory=list)
    is_active: bool = True
    usage_count: int = 0
    last_used: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    rate_limit_per_hour: Optional[int] = None
    created_at: Optional[datetime] = None

    def allows(self, scope: ApiKeyScope) -> bool:
        return self.is_active and scope.value in self.scopes


class GeneratedApiKey(BaseModel):
    """Result of a key generation. The secret is shown exactly once."""
    key_id: str
    api_key: Optional[str] = None
    preview: str
    expires_at: Optional[datetime] = None
    acknowledged: bool = False


class Webhook(BaseModel):
    """A webhook subscription and its delivery counters."""
    id: str
    user_id: Optional[str] = None
    api_key_id: Optional[str] = None
    trigger_type: TriggerType
    webhook_url: str
    is_active: bool = True
    success_count: int = 0
    failure_count: int = 0
    last_triggered: Optional[datetime] = None
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None


class WebhookTestResult(BaseModel):
    """Outcome of a manual test delivery and the refreshed webhook."""
    delivered: bool
    message: str = ""
    webhook: Optional[Webhook] = None


class SubscriptionDraft(BaseModel):
    """Pre-filled subscription form for replacing an expired webhook."""
    trigger_type: TriggerType
    webhook_url: str = ""
    replaces_webhook_id: str
