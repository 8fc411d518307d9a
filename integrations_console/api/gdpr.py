"""GDPR administration endpoints."""

from fastapi import APIRouter, Depends, status
import logging

from integrations_console.core.config import get_settings
from integrations_console.models import Notification
from integrations_console.schemas.gdpr import BulkDeletionCreate, BulkDeletionResponse
from integrations_console.services import BulkDeletionService
from integrations_console.api.dependencies import (
    get_bulk_deletion_service,
    require_admin,
    require_confirmation,
)

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


@router.post("/deletions", response_model=BulkDeletionResponse, status_code=status.HTTP_201_CREATED)
async def request_bulk_deletion(
    request: BulkDeletionCreate,
    confirmed: bool = Depends(require_confirmation),
    admin=Depends(require_admin),
    service: BulkDeletionService = Depends(get_bulk_deletion_service),
):
    """Schedule deletion for the selected users."""
    result = await service.request_bulk_deletion(
        admin_id=admin["id"],
        users=request.users,
        reason=request.reason,
        immediate=request.immediate_delete,
    )
    description = result.message
    if not result.immediate:
        description += f" All deletions include a {settings.deletion_grace_days}-day grace period."
    return BulkDeletionResponse(
        result=result,
        notification=Notification(title="Bulk Deletion Requested", description=description),
    )
