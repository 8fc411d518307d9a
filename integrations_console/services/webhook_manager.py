"""Webhook subscription management for the Zapier bridge."""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit
import logging
import math
import re

from integrations_console.core.backend import BackendClient
from integrations_console.core.cache import QueryCache
from integrations_console.core.exceptions import BackendError, NoValidApiKey, UnknownResponseShape, ValidationError
from integrations_console.models import (
    ApiKey,
    ApiKeyScope,
    SubscriptionDraft,
    TriggerType,
    Webhook,
    WebhookTestResult,
)
from integrations_console.services.api_keys import ApiKeyManager
from integrations_console.services.mutations import MutationTracker, mutation_tracker
from integrations_console.utils.masking import is_uuid

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 90
FAILURE_THRESHOLD = 70

_EXPIRED_STATUS = re.compile(r"\b(?:404|410)\b")
_EXPIRED_PHRASES = ("not found", "unsubscribe me")


def validate_webhook_url(url: str) -> bool:
    """True when ``url`` parses and its scheme is exactly https."""
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        return False
    return parts.scheme == "https" and bool(parts.hostname)


def success_rate(success_count: int, failure_count: int) -> int:
    """Percentage of successful deliveries, 0 when nothing was delivered."""
    total = success_count + failure_count
    if total == 0:
        return 0
    return int(math.floor(success_count * 100 / total + 0.5))


def rate_level(success_count: int, failure_count: int) -> str:
    """Display emphasis for a webhook's success rate."""
    if success_count + failure_count == 0:
        return "none"
    rate = success_rate(success_count, failure_count)
    if rate < FAILURE_THRESHOLD:
        return "failing"
    if rate < WARNING_THRESHOLD:
        return "warning"
    return "healthy"


def is_expired(last_error: Optional[str]) -> bool:
    """Whether the last delivery error says the target URL is gone."""
    if not last_error:
        return False
    lowered = last_error.lower()
    return bool(_EXPIRED_STATUS.search(lowered)) or any(p in lowered for p in _EXPIRED_PHRASES)


def _unwrap(result: Any, failure_message: str) -> Dict[str, Any]:
    """Unwrap the ``{success, data, error}`` envelope of zapier-webhooks."""
    if not isinstance(result, dict):
        raise BackendError(failure_message, details={"response": result})
    if not result.get("success", True):
        raise BackendError(result.get("error") or failure_message)
    data = result.get("data", result)
    return data if isinstance(data, dict) else {}


class WebhookManager:
    """Subscribes, tests and removes webhooks."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        api_keys: ApiKeyManager,
        tracker: MutationTracker = mutation_tracker,
    ):
        self.backend = backend
        self.cache = cache
        self.api_keys = api_keys
        self.tracker = tracker

    async def _resolve_api_key(self, api_key_id: Optional[str]) -> ApiKey:
        """Find the key to subscribe with, refusing inactive or unscoped keys."""
        if api_key_id is None:
            for key in await self.api_keys.list_keys(active_only=True):
                if key.allows(ApiKeyScope.WEBHOOK_SUBSCRIBE):
                    return key
            raise NoValidApiKey("Please generate an API key with webhook:subscribe permissions first.")

        if not is_uuid(api_key_id):
            raise ValidationError("API key identifier is not a valid UUID")

        key = await self.api_keys.get_key(api_key_id)
        if key is None or not key.allows(ApiKeyScope.WEBHOOK_SUBSCRIBE):
            raise NoValidApiKey("The selected API key is inactive or lacks webhook:subscribe permission.")
        return key

    async def subscribe(
        self,
        api_key_id: Optional[str],
        url: str,
        trigger_type: str,
    ) -> Webhook:
        """Subscribe ``url`` to a trigger event."""
        if not (url or "").strip() or not trigger_type:
            raise ValidationError("Please provide a valid HTTPS webhook URL and select a trigger type.")
        if not validate_webhook_url(url):
            raise ValidationError("Webhook URL must be a valid HTTPS URL.")
        try:
            trigger = TriggerType(trigger_type)
        except ValueError:
            raise ValidationError(f"Unsupported trigger type: {trigger_type}")

        key = await self._resolve_api_key(api_key_id)
        url = url.strip()

        async with self.tracker.track(f"subscribe:{key.id}:{trigger.value}:{url}"):
            result = await self.backend.invoke(
                "zapier-webhooks",
                {
                    "action": "subscribe",
                    "api_key_id": key.id,
                    "trigger_type": trigger.value,
                    "webhook_url": url,
                },
            )
            if not isinstance(result, dict) or not result.get("success"):
                message = result.get("error") if isinstance(result, dict) else None
                raise BackendError(message or "Unknown error from webhook service")
            data = result.get("data") or {}

        await self.cache.invalidate("webhooks")
        webhook_id = data.get("webhook_id") or data.get("id")
        logger.info(f"Subscribed webhook {webhook_id} to {trigger.value}")
        return Webhook(
            id=webhook_id,
            api_key_id=key.id,
            trigger_type=trigger,
            webhook_url=data.get("webhook_url", url),
            created_at=data.get("created_at"),
        )

    async def list_webhooks(self, refresh: bool = False) -> List[Webhook]:
        """List the caller's webhooks."""
        async def fetch():
            result = await self.backend.invoke("zapier-webhooks", {"action": "list"})
            if not isinstance(result, dict):
                raise UnknownResponseShape("Webhook list response is not an object", raw=result)
            return result.get("webhooks") or (result.get("data") or {}).get("webhooks") or []

        if refresh:
            await self.cache.invalidate("webhooks")
        rows = await self.cache.get_or_fetch("webhooks:list", fetch)
        return [Webhook(**row) for row in rows]

    async def get_webhook(self, webhook_id: str, refresh: bool = False) -> Optional[Webhook]:
        for webhook in await self.list_webhooks(refresh=refresh):
            if webhook.id == webhook_id:
                return webhook
        return None

    async def unsubscribe(self, webhook_id: str) -> None:
        """Delete a subscription. Deliveries stop immediately."""
        async with self.tracker.track(f"unsubscribe:{webhook_id}"):
            result = await self.backend.invoke(
                "zapier-webhooks",
                {"action": "unsubscribe", "webhook_id": webhook_id},
            )
            _unwrap(result, "Failed to unsubscribe webhook")

        await self.cache.invalidate("webhooks")
        logger.info(f"Unsubscribed webhook {webhook_id}")

    async def test(self, webhook_id: str) -> WebhookTestResult:
        """Send a synthetic event and return the re-read webhook.

        The backend records the outcome into the same counters as real
        deliveries, so the counters are only read back, never bumped here.
        """
        async with self.tracker.track(f"test:{webhook_id}"):
            result = await self.backend.invoke(
                "zapier-webhooks",
                {"action": "test", "webhook_id": webhook_id},
            )

        delivered = isinstance(result, dict) and bool(result.get("success"))
        if isinstance(result, dict):
            data = result.get("data") or {}
            message = data.get("message") or result.get("error") or ""
        else:
            message = ""

        webhook = await self.get_webhook(webhook_id, refresh=True)
        logger.info(f"Test delivery for webhook {webhook_id}: {'delivered' if delivered else 'failed'}")
        return WebhookTestResult(delivered=delivered, message=message, webhook=webhook)

    async def test_delivery(self, url: str) -> Dict[str, Any]:
        """Send a synthetic event to an arbitrary URL without subscribing it."""
        if not validate_webhook_url(url):
            raise ValidationError("Webhook URL must be a valid HTTPS URL.")
        result = await self.backend.invoke(
            "zapier-test",
            {"test": "webhook-delivery", "webhookUrl": url.strip()},
        )
        return _unwrap(result, "Webhook delivery test failed")

    def replace(self, webhook: Webhook) -> SubscriptionDraft:
        """Pre-fill a subscription to replace an expired webhook.

        The stale subscription is left in place; the operator deletes it once
        the new one works.
        """
        return SubscriptionDraft(trigger_type=webhook.trigger_type, replaces_webhook_id=webhook.id)
