"""Verification request endpoints."""

from fastapi import APIRouter, Depends, Query

from src.core.config import Constants
from src.core.errors import RecordNotFoundError
from src.domain.create_models import VerificationRequestCreate
from src.domain.update_models import VerificationDecisionUpdate
from src.domain.verification import VerificationRequest, VerificationRole, VerificationStatus
from src.interface.auth import get_current_user_id
from src.interface.deps import get_dispatcher
from src.models.service_models import VerificationPage, VerificationStats
from src.services import verification_service
from src.services.notification_service import NotificationDispatcher


router = APIRouter(prefix="/verifications", tags=["verifications"])


@router.post("/task/{task_id}/request", status_code=Constants.HTTP_CREATED)
async def post_verification_request(
    task_id: str,
    body: VerificationRequestCreate,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> VerificationRequest:
    """Explicitly ask the project's approver to confirm a status change."""
    return await verification_service.open_request(
        task_id=task_id,
        requested_by=user_id,
        requested_status=body.requested_status,
        reason=body.reason,
        dispatcher=dispatcher,
    )


@router.get("")
async def get_verifications(
    role: VerificationRole = VerificationRole.APPROVER,
    status: VerificationStatus | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=Constants.VERIFICATIONS_PAGE_SIZE, ge=1, le=Constants.MAX_VERIFICATIONS_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
) -> VerificationPage:
    """Requests routed to the user (approver) or opened by the user (requester)."""
    return await verification_service.list_for(
        user_id=user_id,
        role=role,
        status=status,
        page=page,
        limit=limit,
    )


@router.get("/stats")
async def get_verification_stats(user_id: str = Depends(get_current_user_id)) -> VerificationStats:
    return await verification_service.stats(user_id=user_id)


@router.get("/{verification_id}")
async def get_verification(verification_id: str, user_id: str = Depends(get_current_user_id)) -> VerificationRequest:
    """A single request, visible to its requester and approver only."""
    request = await verification_service.get_request(verification_id=verification_id)
    if user_id not in (request.requested_by, request.requested_for):
        raise RecordNotFoundError("Verification request not found")
    return request


@router.put("/{verification_id}/status")
async def put_verification_status(
    verification_id: str,
    body: VerificationDecisionUpdate,
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> VerificationRequest:
    """Approve or reject a pending request."""
    return await verification_service.decide(
        verification_id=verification_id,
        decided_by=user_id,
        outcome=body.status,
        notes=body.verification_notes,
        dispatcher=dispatcher,
    )
