"""
Applicant routes: create, draft, edit and cancel travel requests; submit receipts.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from app.api.dependencies import APPLICANT_ROLES, require_roles
from app.db.session import get_db
from app.models.travel_request import TravelRequest, Route
from app.models.user import User, UserRole
from app.schemas.receipt import ReceiptBatchCreate, ReceiptBatchResponse
from app.schemas.travel_request import (
    TravelRequestCreate, DraftRequestCreate, RequestActionResponse,
    TravelRequestResponse, TravelRequestDetailResponse, RouteResponse
)
from app.schemas.user import ApplicantProfile, CostCenterResponse
from app.services import receipt_service, request_service, status_service, user_service
from app.services.file_storage import BlobStore, get_blob_store
from app.services.notification_service import Notifier, get_notifier, notify_status_change

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applicant", tags=["applicant"])

applicant = require_roles(*APPLICANT_ROLES)
request_viewer = require_roles(*APPLICANT_ROLES, UserRole.TRAVEL_AGENCY)


def build_request_response(request: TravelRequest) -> TravelRequestResponse:
    """Build a request response from an ORM row."""
    return TravelRequestResponse(
        id=request.id,
        user_id=request.user_id,
        status_id=request.status_id,
        status=request.status.label,
        notes=request.notes,
        requested_fee=request.requested_fee,
        imposed_fee=request.imposed_fee,
        request_days=request.request_days,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def build_route_response(route: Route) -> RouteResponse:
    """Build a route response with location names resolved."""
    return RouteResponse(
        id=route.id,
        router_index=route.router_index,
        origin_country=route.origin_country.name,
        origin_city=route.origin_city.name,
        destination_country=route.destination_country.name,
        destination_city=route.destination_city.name,
        beginning_date=route.beginning_date,
        beginning_time=route.beginning_time,
        ending_date=route.ending_date,
        ending_time=route.ending_time,
        plane_needed=route.plane_needed,
        hotel_needed=route.hotel_needed,
    )


@router.get("/profile", response_model=ApplicantProfile)
async def get_applicant_profile(
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """Get the caller's applicant profile."""
    return user_service.get_applicant_profile(current_user.id, db)


@router.get("/cost-center", response_model=CostCenterResponse)
async def get_cost_center(
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """Get the department and cost center the caller's trips are charged to."""
    return user_service.get_cost_center(current_user.id, db)


@router.post("/requests", response_model=RequestActionResponse, status_code=status.HTTP_201_CREATED)
async def create_travel_request(
    request_data: TravelRequestCreate,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Create and submit a travel request."""
    request_id = request_service.create_travel_request(current_user.id, request_data, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(request_id=request_id, message="Travel request successfully created")


@router.post("/drafts", response_model=RequestActionResponse, status_code=status.HTTP_201_CREATED)
async def create_draft_travel_request(
    draft_data: DraftRequestCreate,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """Save a travel request as a draft."""
    request_id = request_service.create_draft_travel_request(current_user.id, draft_data, db)
    return RequestActionResponse(request_id=request_id, message="Draft travel request successfully created")


@router.put("/drafts/{request_id}/confirm", response_model=RequestActionResponse)
async def confirm_draft_travel_request(
    request_id: int,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Submit a saved draft."""
    result = status_service.confirm_draft(current_user.id, request_id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )


@router.put("/requests/{request_id}", response_model=RequestActionResponse)
async def edit_travel_request(
    request_id: int,
    request_data: TravelRequestCreate,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """Update a request and replace its routes."""
    request_service.edit_travel_request(request_id, request_data, db)
    return RequestActionResponse(request_id=request_id, message="Travel request successfully updated")


@router.put("/requests/{request_id}/cancel", response_model=RequestActionResponse)
async def cancel_travel_request(
    request_id: int,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Cancel a request that has not reached expense proof."""
    result = status_service.cancel_request(request_id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )


@router.put("/requests/{request_id}/send-validation", response_model=RequestActionResponse)
async def send_expense_validation(
    request_id: int,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Send the request's receipts to accounts payable."""
    result = status_service.send_receipts_for_validation(request_id, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )


@router.get("/requests", response_model=List[TravelRequestResponse])
async def list_active_requests(
    current_user: User = Depends(request_viewer),
    db: Session = Depends(get_db)
):
    """List the caller's requests that are still in progress."""
    requests = request_service.list_active_requests(current_user.id, db)
    return [build_request_response(r) for r in requests]


@router.get("/requests/completed", response_model=List[TravelRequestResponse])
async def list_completed_requests(
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """List the caller's finalized, cancelled and declined requests."""
    requests = request_service.list_completed_requests(current_user.id, db)
    return [build_request_response(r) for r in requests]


@router.get("/requests/{request_id}", response_model=TravelRequestDetailResponse)
async def get_travel_request(
    request_id: int,
    current_user: User = Depends(request_viewer),
    db: Session = Depends(get_db)
):
    """Get a request with its ordered routes."""
    request, routes = request_service.get_request_detail(request_id, db)
    response = build_request_response(request)

    return TravelRequestDetailResponse(
        **response.model_dump(),
        routes=[build_route_response(route) for route in routes]
    )


@router.post("/receipts", response_model=ReceiptBatchResponse, status_code=status.HTTP_201_CREATED)
async def create_expense_validation(
    batch: ReceiptBatchCreate,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db)
):
    """Create a batch of receipts for later validation."""
    inserted = receipt_service.create_receipt_batch(batch.receipts, db)
    return ReceiptBatchResponse(message="Receipts created successfully", inserted=inserted)


@router.delete("/receipts/{receipt_id}")
async def delete_receipt(
    receipt_id: int,
    current_user: User = Depends(applicant),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store)
):
    """Delete a receipt and, best-effort, its attached files."""
    files_removed = receipt_service.delete_receipt(receipt_id, db, store)
    return {
        "message": "Receipt deleted successfully",
        "receipt_id": receipt_id,
        "files_removed": files_removed,
    }
