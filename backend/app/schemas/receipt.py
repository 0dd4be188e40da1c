"""
Pydantic schemas for receipts and their validation.
"""
from pydantic import BaseModel
from typing import Any, List, Optional
from decimal import Decimal
from app.models.receipt import ValidationState


class ReceiptBatchCreate(BaseModel):
    """
    Batch of receipts to insert.

    Items are checked by the receipt service so that a bad item is reported
    with its position and field name.
    """
    receipts: Any = None


class ReceiptBatchResponse(BaseModel):
    """Schema for batch creation response."""
    message: str
    inserted: int


class ReceiptDecision(BaseModel):
    """Accounts-payable decision on one receipt."""
    approval: bool


class ReceiptDecisionResponse(BaseModel):
    """Schema for receipt decision response."""
    receipt_id: int
    validation: ValidationState
    message: str


class ReevaluationResponse(BaseModel):
    """Outcome of re-scanning all receipts of a request."""
    request_id: int
    updated_status: Optional[int] = None
    message: str


class ReceiptFileRef(BaseModel):
    """Reference to a file kept in the blob store."""
    file_id: Optional[str] = None
    file_name: Optional[str] = None


class ExpenseItem(BaseModel):
    """Receipt line inside an expense validation summary."""
    receipt_id: int
    receipt_type_name: Optional[str] = None
    amount: Decimal
    validation: ValidationState
    pdf: ReceiptFileRef
    xml: ReceiptFileRef


class ExpenseValidationSummary(BaseModel):
    """All receipts of a request, pending ones first."""
    request_id: int
    status: Optional[str] = None
    expenses: List[ExpenseItem] = []


class ReceiptFilesResponse(BaseModel):
    """Schema for uploaded receipt files."""
    receipt_id: int
    pdf: ReceiptFileRef
    xml: ReceiptFileRef
