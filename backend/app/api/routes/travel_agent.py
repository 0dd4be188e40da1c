"""
Travel agency routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.dependencies import require_roles
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.travel_request import RequestActionResponse
from app.services import status_service
from app.services.notification_service import Notifier, get_notifier, notify_status_change

router = APIRouter(prefix="/travel-agent", tags=["travel-agent"])


@router.put("/requests/{request_id}/attend", response_model=RequestActionResponse)
async def attend_travel_request(
    request_id: int,
    current_user: User = Depends(require_roles(UserRole.TRAVEL_AGENCY)),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Mark flights and hotels as booked; the request moves to expense proof."""
    result = status_service.attend_travel_agency(request_id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )
