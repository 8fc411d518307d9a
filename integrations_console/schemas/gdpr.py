"""GDPR API schemas."""

from typing import List
from pydantic import BaseModel

from integrations_console.models import AdminUser, BulkDeletionResult, Notification


class BulkDeletionCreate(BaseModel):
    """Bulk deletion request from the admin console."""
    users: List[AdminUser]
    reason: str
    immediate_delete: bool = False


class BulkDeletionResponse(BaseModel):
    result: BulkDeletionResult
    notification: Notification
