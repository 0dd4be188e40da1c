"""
Accounts-payable routes: quote attention and receipt validation.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.dependencies import APPLICANT_ROLES, require_roles
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.receipt import (
    ReceiptDecision, ReceiptDecisionResponse, ReevaluationResponse, ExpenseValidationSummary
)
from app.schemas.travel_request import AttendRequest, RequestActionResponse
from app.services import receipt_service, status_service
from app.services.notification_service import Notifier, get_notifier, notify_status_change

router = APIRouter(prefix="/accounts-payable", tags=["accounts-payable"])

accounts_payable = require_roles(UserRole.ACCOUNTS_PAYABLE)


@router.put("/requests/{request_id}/attend", response_model=RequestActionResponse)
async def attend_travel_request(
    request_id: int,
    attend_data: AttendRequest,
    current_user: User = Depends(accounts_payable),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Set the imposed fee on a quoted request and send it onward."""
    result = status_service.attend_accounts_payable(request_id, attend_data.imposed_fee, db)
    notify_status_change(request_id, db, notifier)

    return RequestActionResponse(
        request_id=request_id,
        message=result.message,
        status_id=result.status.value,
        status=result.status.label,
    )


@router.put("/receipts/{receipt_id}/validate", response_model=ReceiptDecisionResponse)
async def validate_receipt(
    receipt_id: int,
    decision: ReceiptDecision,
    current_user: User = Depends(accounts_payable),
    db: Session = Depends(get_db)
):
    """Approve or reject a single pending receipt."""
    outcome = receipt_service.set_receipt_outcome(receipt_id, decision.approval, db)
    return ReceiptDecisionResponse(
        receipt_id=receipt_id,
        validation=outcome,
        message="Receipt status updated successfully",
    )


@router.put("/requests/{request_id}/validate-receipts", response_model=ReevaluationResponse)
async def validate_receipts(
    request_id: int,
    current_user: User = Depends(accounts_payable),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Re-evaluate all receipts of a request and update its status."""
    result = receipt_service.reevaluate_request(request_id, db)
    if result.status is not None:
        notify_status_change(request_id, db, notifier)

    return ReevaluationResponse(
        request_id=request_id,
        updated_status=result.status.value if result.status is not None else None,
        message=result.message,
    )


@router.get("/requests/{request_id}/expense-validations", response_model=ExpenseValidationSummary)
async def get_expense_validations(
    request_id: int,
    current_user: User = Depends(require_roles(UserRole.ACCOUNTS_PAYABLE, *APPLICANT_ROLES)),
    db: Session = Depends(get_db)
):
    """List a request's receipts with their validation state."""
    return receipt_service.get_expense_validations(request_id, db)
