"""
Authorizer routes: level-1 and level-2 approval or rejection of requests.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.api.dependencies import AUTHORIZER_ROLES, require_roles
from app.db.session import get_db
from typing import List, Optional
from app.models.travel_request import RequestStatus
from app.models.user import User, UserRole
from app.schemas.travel_request import DepartmentRequestSummary, RequestActionResponse
from app.services import request_service, status_service
from app.services.notification_service import Notifier, get_notifier, notify_status_change

router = APIRouter(prefix="/authorizer", tags=["authorizer"])

authorizer = require_roles(*AUTHORIZER_ROLES)

# Queue each authorizer level works from when no status is given
REVIEW_STATUS_BY_ROLE = {
    UserRole.AUTHORIZER_N1: RequestStatus.FIRST_REVIEW,
    UserRole.AUTHORIZER_N2: RequestStatus.SECOND_REVIEW,
}


@router.get("/requests", response_model=List[DepartmentRequestSummary])
async def list_department_requests(
    status_id: Optional[int] = Query(None),
    n: Optional[int] = Query(None, ge=0),
    current_user: User = Depends(authorizer),
    db: Session = Depends(get_db)
):
    """List requests from the caller's department in one status, newest first."""
    if current_user.department_id is None:
        return []
    if status_id is None:
        status_id = REVIEW_STATUS_BY_ROLE[current_user.role].value
    return request_service.list_department_requests(current_user.department_id, status_id, db, limit=n)


@router.put("/requests/{request_id}/authorize", response_model=RequestActionResponse)
async def authorize_travel_request(
    request_id: int,
    current_user: User = Depends(authorizer),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Approve a request; the next status depends on the authorizer's level."""
    result = status_service.authorize_request(request_id, current_user.id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )


@router.put("/requests/{request_id}/decline", response_model=RequestActionResponse)
async def decline_travel_request(
    request_id: int,
    current_user: User = Depends(authorizer),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Decline a request."""
    result = status_service.decline_request(request_id, current_user.id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )
