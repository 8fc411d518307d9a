"""Administrative user and GDPR models."""

from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from enum import Enum


class UserStatus(str, Enum):
    """Account lifecycle status."""
    ACTIVE = "active"
    PENDING_DELETION = "pending_deletion"
    DELETED = "deleted"


class DeletionStatus(str, Enum):
    """Deletion request status."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AdminUser(BaseModel):
    """A user row as seen by the admin console."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    status: UserStatus = UserStatus.ACTIVE


class DeletionRequest(BaseModel):
    """A right-to-erasure request awaiting its grace period."""
    id: Optional[str] = None
    user_id: str
    requested_by: str
    reason: str = ""
    scheduled_for: datetime
    grace_period_end: Optional[datetime] = None
    immediate_delete: bool = False
    status: DeletionStatus = DeletionStatus.PENDING


class GdprAuditEntry(BaseModel):
    """Audit trail row for GDPR operations."""
    event_type: str
    user_id: str
    admin_id: str
    details: Dict[str, Any] = Field(default_factory=dict)
    legal_basis: str = "Article 17 - Right to erasure"
    status: str = "completed"


class BulkDeletionResult(BaseModel):
    """Outcome of a bulk deletion request."""
    created: int = 0
    skipped_self: int = 0
    skipped_pending: int = 0
    immediate: bool = False
    grace_period_end: Optional[datetime] = None
    message: str = ""
