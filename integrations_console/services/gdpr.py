"""GDPR right-to-erasure requests raised from the admin console."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from integrations_console.core.backend import BackendClient, TABLES
from integrations_console.core.cache import QueryCache
from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import ValidationError
from integrations_console.models import (
    AdminUser,
    BulkDeletionResult,
    DeletionRequest,
    GdprAuditEntry,
    UserStatus,
)
from integrations_console.services.mutations import MutationTracker, mutation_tracker

logger = logging.getLogger(__name__)
settings = get_settings()

LEGAL_BASIS = "Article 17 - Right to erasure"

_CLOSED_STATUSES = (UserStatus.PENDING_DELETION, UserStatus.DELETED)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def summarize(result: BulkDeletionResult) -> str:
    message = f"Deletion requested for {_plural(result.created, 'user')}."
    if result.skipped_self:
        message += f" {result.skipped_self} skipped (self)."
    if result.skipped_pending:
        message += f" {result.skipped_pending} already pending deletion skipped."
    return message


class BulkDeletionService:
    """Schedules account deletions for many users at once."""

    def __init__(
        self,
        backend: BackendClient,
        cache: QueryCache,
        tracker: MutationTracker = mutation_tracker,
    ):
        self.backend = backend
        self.cache = cache
        self.tracker = tracker

    async def request_bulk_deletion(
        self,
        admin_id: str,
        users: List[AdminUser],
        reason: str,
        immediate: bool = False,
        now: Optional[datetime] = None,
    ) -> BulkDeletionResult:
        """Create deletion requests and audit entries for every eligible user.

        The acting admin and users already on their way out are skipped.
        """
        if not admin_id:
            raise ValidationError("Authentication required for bulk deletion")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reason is required for deletion requests")

        skipped_self = sum(1 for user in users if user.id == admin_id)
        skipped_pending = sum(1 for user in users if user.id != admin_id and user.status in _CLOSED_STATUSES)
        eligible = [user for user in users if user.id != admin_id and user.status not in _CLOSED_STATUSES]
        if not eligible:
            raise ValidationError("No eligible users selected for deletion")

        now = now or datetime.utcnow()
        grace_end = None if immediate else now + timedelta(days=settings.deletion_grace_days)
        scheduled_for = now if immediate else grace_end

        requests = [
            DeletionRequest(
                user_id=user.id,
                requested_by=admin_id,
                reason=reason,
                scheduled_for=scheduled_for,
                grace_period_end=grace_end,
                immediate_delete=immediate,
            ).model_dump(mode="json", exclude={"id"})
            for user in eligible
        ]
        audit_entries = [
            GdprAuditEntry(
                event_type="bulk_deletion_requested",
                user_id=user.id,
                admin_id=admin_id,
                legal_basis=LEGAL_BASIS,
                details=self._audit_details(user, reason, immediate, grace_end, len(eligible)),
            ).model_dump(mode="json")
            for user in eligible
        ]
        user_ids = [user.id for user in eligible]

        async with self.tracker.track(f"bulk-delete:{','.join(sorted(user_ids))}"):
            await self.backend.insert(TABLES["deletion_requests"], requests)
            await self.backend.insert(TABLES["audit_log"], audit_entries)
            await self.backend.update(
                TABLES["users"],
                {"status": UserStatus.PENDING_DELETION.value},
                {"id": user_ids},
            )

        result = BulkDeletionResult(
            created=len(eligible),
            skipped_self=skipped_self,
            skipped_pending=skipped_pending,
            immediate=immediate,
            grace_period_end=grace_end,
        )
        result.message = summarize(result)
        await self.cache.invalidate("users", "gdpr")
        logger.info(f"Admin {admin_id} requested deletion of {len(eligible)} users")
        return result

    @staticmethod
    def _audit_details(
        user: AdminUser,
        reason: str,
        immediate: bool,
        grace_end: Optional[datetime],
        total: int,
    ) -> Dict[str, Any]:
        return {
            "reason": reason,
            "immediate_delete": immediate,
            "grace_period_end": grace_end.isoformat() if grace_end else None,
            "bulk_operation": True,
            "total_users": total,
            "user_email": user.email,
        }
