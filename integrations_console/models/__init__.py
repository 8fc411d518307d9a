"""Domain models for the integrations console."""

from .integration import (
    AuthType,
    CapabilityType,
    ConnectionStatus,
    IntegrationCapability,
    IntegrationCategory,
    IntegrationConfig,
    IntegrationConnection,
)
from .zapier import ApiKey, ApiKeyScope, GeneratedApiKey, SubscriptionDraft, TriggerType, Webhook, WebhookTestResult
from .admin import AdminUser, BulkDeletionResult, DeletionRequest, DeletionStatus, GdprAuditEntry, UserStatus
from .notification import Notification, NotificationVariant
from .diagnostics import (
    CheckResult,
    CheckStatus,
    ConnectionHealth,
    ConnectionTestReport,
    HealthScore,
    StatusSnapshot,
    SystemHealth,
    Verdict,
)

__all__ = [
    "AuthType",
    "CapabilityType",
    "ConnectionStatus",
    "IntegrationCapability",
    "IntegrationCategory",
    "IntegrationConfig",
    "IntegrationConnection",
    "ApiKey",
    "ApiKeyScope",
    "GeneratedApiKey",
    "SubscriptionDraft",
    "TriggerType",
    "Webhook",
    "WebhookTestResult",
    "AdminUser",
    "BulkDeletionResult",
    "DeletionRequest",
    "DeletionStatus",
    "GdprAuditEntry",
    "UserStatus",
    "Notification",
    "NotificationVariant",
    "CheckResult",
    "CheckStatus",
    "ConnectionHealth",
    "ConnectionTestReport",
    "HealthScore",
    "StatusSnapshot",
    "SystemHealth",
    "Verdict",
]
