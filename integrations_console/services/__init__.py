"""Services for the integrations console."""

from .mutations import MutationState, MutationTracker, mutation_tracker
from .connection_store import ConnectionStore, derive_connection_status
from .oauth import OAuthInitiator
from .api_keys import ApiKeyManager, expiration_status
from .webhook_manager import WebhookManager, is_expired, rate_level, success_rate, validate_webhook_url
from .connection_test import ConnectionTestRunner, notification_for
from .health import HealthAggregator, classify_connection
from .gdpr import BulkDeletionService

__all__ = [
    "MutationState",
    "MutationTracker",
    "mutation_tracker",
    "ConnectionStore",
    "derive_connection_status",
    "OAuthInitiator",
    "ApiKeyManager",
    "expiration_status",
    "WebhookManager",
    "is_expired",
    "rate_level",
    "success_rate",
    "validate_webhook_url",
    "ConnectionTestRunner",
    "notification_for",
    "HealthAggregator",
    "classify_connection",
    "BulkDeletionService",
]
