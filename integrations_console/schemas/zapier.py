"""Zapier bridge API schemas."""

from datetime import datetime
from typing import Any, Optional, List
from pydantic import BaseModel, Field

from integrations_console.models import (
    ApiKey,
    CheckResult,
    ConnectionTestReport,
    Notification,
    Verdict,
    Webhook,
)


class ApiKeyCreate(BaseModel):
    """Schema for generating an API key."""
    key_name: str
    scopes: List[str]


class ApiKeyResponse(BaseModel):
    """API key metadata with its expiration state."""
    key: ApiKey
    expiration_status: str


class ApiKeyListResponse(BaseModel):
    items: List[ApiKeyResponse]
    total: int


class WebhookCreate(BaseModel):
    """Schema for subscribing a webhook."""
    webhook_url: str
    trigger_type: str
    api_key_id: Optional[str] = None


class WebhookResponse(BaseModel):
    """A webhook with its derived delivery state."""
    webhook: Webhook
    success_rate: int
    rate_level: str
    expired: bool


class WebhookListResponse(BaseModel):
    items: List[WebhookResponse]
    total: int


class WebhookTestResponse(BaseModel):
    delivered: bool
    message: str = ""
    webhook: Optional[WebhookResponse] = None
    notification: Notification


class ConnectionTestRequest(BaseModel):
    api_key: Optional[str] = None


class ConnectionTestResult(BaseModel):
    """Diagnostic report plus the toast it produces."""
    checks: List[CheckResult]
    verdict: Verdict
    raw_response: Any = None
    tested_at: datetime
    notification: Notification

    @classmethod
    def from_report(cls, report: ConnectionTestReport, notification: Notification) -> "ConnectionTestResult":
        return cls(
            checks=report.checks,
            verdict=report.verdict,
            raw_response=report.raw_response,
            tested_at=report.tested_at,
            notification=notification,
        )


class DeliveryTestRequest(BaseModel):
    webhook_url: str = Field(..., description="HTTPS endpoint to send a sample event to")
