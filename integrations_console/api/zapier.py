"""Zapier bridge endpoints: API keys, webhooks and connection diagnostics."""

from fastapi import APIRouter, Depends, status
from typing import Any, Dict
import logging

from integrations_console.models import (
    GeneratedApiKey,
    Notification,
    NotificationVariant,
    SubscriptionDraft,
    Webhook,
)
from integrations_console.schemas.zapier import (
    ApiKeyCreate,
    ApiKeyListResponse,
    ApiKeyResponse,
    ConnectionTestRequest,
    ConnectionTestResult,
    DeliveryTestRequest,
    WebhookCreate,
    WebhookListResponse,
    WebhookResponse,
    WebhookTestResponse,
)
from integrations_console.core.exceptions import ValidationError
from integrations_console.services import (
    ApiKeyManager,
    ConnectionTestRunner,
    WebhookManager,
    expiration_status,
    is_expired,
    notification_for,
    rate_level,
    success_rate,
)
from integrations_console.api.dependencies import (
    get_api_key_manager,
    get_connection_test_runner,
    get_current_user,
    get_webhook_manager,
    require_confirmation,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def webhook_response(webhook: Webhook) -> WebhookResponse:
    return WebhookResponse(
        webhook=webhook,
        success_rate=success_rate(webhook.success_count, webhook.failure_count),
        rate_level=rate_level(webhook.success_count, webhook.failure_count),
        expired=is_expired(webhook.last_error),
    )


# API keys

@router.get("/api-keys", response_model=ApiKeyListResponse)
async def list_api_keys(
    active_only: bool = True,
    current_user=Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    """List API keys, newest first."""
    keys = await manager.list_keys(active_only=active_only)
    items = [ApiKeyResponse(key=key, expiration_status=expiration_status(key)) for key in keys]
    return ApiKeyListResponse(items=items, total=len(items))


@router.post("/api-keys", response_model=GeneratedApiKey, status_code=status.HTTP_201_CREATED)
async def generate_api_key(
    request: ApiKeyCreate,
    current_user=Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    """Generate a key. The response is the only time the secret is shown."""
    return await manager.generate(request.key_name, request.scopes)


@router.post("/api-keys/{key_id}/acknowledge", response_model=GeneratedApiKey)
async def acknowledge_api_key(
    key_id: str,
    current_user=Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    """Confirm the secret was copied; it cannot be displayed again."""
    return manager.acknowledge(key_id)


@router.delete("/api-keys/{key_id}", response_model=Notification)
async def revoke_api_key(
    key_id: str,
    confirmed: bool = Depends(require_confirmation),
    current_user=Depends(get_current_user),
    manager: ApiKeyManager = Depends(get_api_key_manager),
):
    """Revoke a key. Webhooks using it stop delivering."""
    await manager.revoke(key_id)
    return Notification(
        title="API Key Revoked",
        description="The API key has been revoked and can no longer be used.",
    )


# Webhooks

@router.get("/webhooks", response_model=WebhookListResponse)
async def list_webhooks(
    refresh: bool = False,
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
):
    """List webhook subscriptions with their delivery state."""
    webhooks = await manager.list_webhooks(refresh=refresh)
    return WebhookListResponse(items=[webhook_response(w) for w in webhooks], total=len(webhooks))


@router.post("/webhooks", response_model=WebhookResponse, status_code=status.HTTP_201_CREATED)
async def subscribe_webhook(
    request: WebhookCreate,
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
):
    """Subscribe an HTTPS endpoint to a trigger event."""
    webhook = await manager.subscribe(request.api_key_id, request.webhook_url, request.trigger_type)
    return webhook_response(webhook)


@router.delete("/webhooks/{webhook_id}", response_model=Notification)
async def unsubscribe_webhook(
    webhook_id: str,
    confirmed: bool = Depends(require_confirmation),
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
):
    """Delete a subscription."""
    await manager.unsubscribe(webhook_id)
    return Notification(
        title="Webhook Deleted",
        description="Webhook subscription has been removed.",
    )


@router.post("/webhooks/{webhook_id}/test", response_model=WebhookTestResponse)
async def test_webhook(
    webhook_id: str,
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
):
    """Send a sample event and return the refreshed counters."""
    result = await manager.test(webhook_id)
    if result.delivered:
        notification = Notification(
            title="Test Successful",
            description="Test webhook was delivered successfully.",
        )
    else:
        notification = Notification(
            title="Test Failed",
            description=result.message or "Test webhook delivery failed.",
            variant=NotificationVariant.DESTRUCTIVE,
        )
    return WebhookTestResponse(
        delivered=result.delivered,
        message=result.message,
        webhook=webhook_response(result.webhook) if result.webhook else None,
        notification=notification,
    )


@router.get("/webhooks/{webhook_id}/replace", response_model=SubscriptionDraft)
async def replace_webhook(
    webhook_id: str,
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
):
    """Pre-filled subscription for replacing an expired webhook."""
    webhook = await manager.get_webhook(webhook_id)
    if webhook is None:
        raise ValidationError(f"Webhook {webhook_id} not found")
    return manager.replace(webhook)


@router.post("/webhooks/delivery-test")
async def test_webhook_delivery(
    request: DeliveryTestRequest,
    current_user=Depends(get_current_user),
    manager: WebhookManager = Depends(get_webhook_manager),
) -> Dict[str, Any]:
    """Send a sample event to a URL without subscribing it."""
    return await manager.test_delivery(request.webhook_url)


# Diagnostics

@router.post("/connection-test", response_model=ConnectionTestResult)
async def run_connection_test(
    request: ConnectionTestRequest,
    current_user=Depends(get_current_user),
    runner: ConnectionTestRunner = Depends(get_connection_test_runner),
):
    """Run the three-part connection diagnostic."""
    report = await runner.run(request.api_key)
    return ConnectionTestResult.from_report(report, notification_for(report))
