"""
Receipt service: batch creation, accounts-payable decisions, and the
re-evaluation that turns receipt outcomes into a request status.
"""
import logging
from decimal import Decimal
from typing import Any, BinaryIO, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import (
    InvalidTransitionError, NotFoundError, ValidationFailedError
)
from app.core.utils import is_number
from app.db.session import transaction
from app.models.receipt import Receipt, ReceiptType, ValidationState
from app.models.travel_request import RequestStatus
from app.services.file_storage import BlobStore, IncomingFile, StoredFile, is_valid_file_id
from app.services.status_service import (
    Action, TransitionResult, apply_transition, get_request_or_404
)

logger = logging.getLogger(__name__)

RECEIPT_ID_FIELDS = ("receipt_type_id", "request_id")

# Pending receipts are listed first, approved ones last
VALIDATION_ORDER = {
    ValidationState.PENDING: 1,
    ValidationState.REJECTED: 2,
    ValidationState.APPROVED: 3,
}


def validate_receipt_batch(receipts: Any) -> None:
    """
    Check a batch before anything is written.

    The batch must be a non-empty list; each item needs integer
    ``receipt_type_id`` and ``request_id`` and a numeric ``amount``.
    """
    if not isinstance(receipts, list) or not receipts:
        raise ValidationFailedError('The "receipts" field must be a non-empty array', field_name="receipts")

    for index, item in enumerate(receipts):
        if not isinstance(item, dict):
            raise ValidationFailedError(f"Receipt {index} must be an object", index=index)
        for field_name in RECEIPT_ID_FIELDS:
            value = item.get(field_name)
            if not is_number(value) or int(value) != value:
                raise ValidationFailedError(
                    f'Receipt {index}: "{field_name}" must be an integer',
                    field_name=field_name,
                    index=index,
                )
        if not is_number(item.get("amount")):
            raise ValidationFailedError(
                f'Receipt {index}: "amount" must be a number',
                field_name="amount",
                index=index,
            )


def create_receipt_batch(receipts: Any, db: Session) -> int:
    """Insert a validated batch of receipts in one transaction. Returns the count inserted."""
    validate_receipt_batch(receipts)

    with transaction(db):
        for item in receipts:
            db.add(Receipt(
                receipt_type_id=int(item["receipt_type_id"]),
                request_id=int(item["request_id"]),
                amount=Decimal(str(item["amount"])),
                validation=ValidationState.PENDING,
            ))
        db.flush()

    logger.info("Inserted %d receipts", len(receipts))
    return len(receipts)


def get_receipt_or_404(receipt_id: int, db: Session) -> Receipt:
    """Load a receipt or raise NotFoundError."""
    receipt = db.query(Receipt).filter(Receipt.id == receipt_id).first()
    if not receipt:
        raise NotFoundError("Receipt not found")
    return receipt


def set_receipt_outcome(receipt_id: int, approved: bool, db: Session) -> ValidationState:
    """
    Approve or reject one pending receipt.

    Does not re-evaluate the parent request; call ``reevaluate_request``
    afterwards.
    """
    with transaction(db):
        receipt = get_receipt_or_404(receipt_id, db)
        if receipt.validation != ValidationState.PENDING:
            raise InvalidTransitionError("Receipt already approved or rejected")
        outcome = ValidationState.APPROVED if approved else ValidationState.REJECTED
        receipt.validation = outcome

    logger.info("Receipt %s marked %s", receipt_id, outcome.value)
    return outcome


def reevaluate_request(request_id: int, db: Session) -> TransitionResult:
    """
    Derive the request status from all of its receipts.

    Any rejected receipt sends the request back to expense proof; otherwise,
    if every receipt is approved, the request is finalized; otherwise nothing
    changes. The whole receipt set is read on every call.
    """
    with transaction(db):
        request = get_request_or_404(request_id, db)
        states = [
            row.validation for row in
            db.query(Receipt.validation).filter(Receipt.request_id == request_id).all()
        ]

        if ValidationState.REJECTED in states:
            apply_transition(request, Action.RETURN_TO_PROOF, RequestStatus.EXPENSE_PROOF)
            result = TransitionResult(
                request_id,
                RequestStatus.EXPENSE_PROOF,
                "Some receipts were rejected. Request moved back to 'Expense Proof'."
            )
        elif all(state == ValidationState.APPROVED for state in states):
            apply_transition(request, Action.FINALIZE, RequestStatus.FINALIZED)
            result = TransitionResult(
                request_id, RequestStatus.FINALIZED, "All receipts approved. Request finalized."
            )
        else:
            result = TransitionResult(
                request_id, None, "Receipts still pending. No status change applied."
            )

    return result


def get_expense_validations(request_id: int, db: Session) -> Dict[str, Any]:
    """Receipts of a request with their validation state, pending first."""
    get_request_or_404(request_id, db)
    rows: List[Tuple[Receipt, Optional[str]]] = db.query(Receipt, ReceiptType.name).outerjoin(
        ReceiptType, Receipt.receipt_type_id == ReceiptType.id
    ).filter(Receipt.request_id == request_id).all()

    if not rows:
        return {"request_id": request_id, "status": None, "expenses": []}

    has_pending = any(receipt.validation == ValidationState.PENDING for receipt, _ in rows)
    rows.sort(key=lambda row: (VALIDATION_ORDER[row[0].validation], row[0].id))

    return {
        "request_id": request_id,
        "status": "Pending" if has_pending else "No pending",
        "expenses": [
            {
                "receipt_id": receipt.id,
                "receipt_type_name": type_name,
                "amount": receipt.amount,
                "validation": receipt.validation,
                "pdf": {"file_id": receipt.pdf_file_id, "file_name": receipt.pdf_file_name},
                "xml": {"file_id": receipt.xml_file_id, "file_name": receipt.xml_file_name},
            }
            for receipt, type_name in rows
        ],
    }


def _check_upload(upload: IncomingFile, allowed_types: List[str], label: str) -> None:
    if upload.content_type not in allowed_types:
        raise ValidationFailedError(
            f"Invalid {label} file type: {upload.content_type}", field_name=f"{label.lower()}_file"
        )
    if len(upload.data) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailedError(f"{label} file exceeds the upload size limit", field_name=f"{label.lower()}_file")


def _delete_blob(store: BlobStore, file_id: Optional[str], label: str) -> bool:
    """Delete one blob, logging instead of raising on failure."""
    if not file_id:
        return True
    try:
        store.delete(file_id)
        return True
    except Exception as exc:
        logger.error("Error deleting %s file %s: %s", label, file_id, exc)
        return False


def upload_receipt_files(
    receipt_id: int,
    pdf_file: IncomingFile,
    xml_file: IncomingFile,
    db: Session,
    store: BlobStore
) -> Dict[str, StoredFile]:
    """Store the PDF and XML proofs of a receipt and record their references."""
    _check_upload(pdf_file, settings.ALLOWED_PDF_TYPES, "PDF")
    _check_upload(xml_file, settings.ALLOWED_XML_TYPES, "XML")
    receipt = get_receipt_or_404(receipt_id, db)
    previous = (receipt.pdf_file_id, receipt.xml_file_id)

    pdf = store.put(pdf_file.data, pdf_file.file_name, pdf_file.content_type,
                    {"receipt_id": receipt_id, "file_type": "pdf"})
    xml = store.put(xml_file.data, xml_file.file_name, xml_file.content_type,
                    {"receipt_id": receipt_id, "file_type": "xml"})

    with transaction(db):
        receipt.pdf_file_id = pdf.file_id
        receipt.pdf_file_name = pdf.file_name
        receipt.xml_file_id = xml.file_id
        receipt.xml_file_name = xml.file_name

    _delete_blob(store, previous[0], "PDF")
    _delete_blob(store, previous[1], "XML")
    return {"pdf": pdf, "xml": xml}


def get_receipt_files_metadata(receipt_id: int, db: Session) -> Dict[str, StoredFile]:
    """File references recorded on a receipt."""
    receipt = get_receipt_or_404(receipt_id, db)
    return {
        "pdf": StoredFile(file_id=receipt.pdf_file_id, file_name=receipt.pdf_file_name),
        "xml": StoredFile(file_id=receipt.xml_file_id, file_name=receipt.xml_file_name),
    }


def open_receipt_file(file_id: str, store: BlobStore) -> Tuple[BinaryIO, Dict[str, Any]]:
    """Open a stored receipt file for streaming, with its sidecar description."""
    if not is_valid_file_id(file_id):
        raise ValidationFailedError("Invalid file ID format", field_name="file_id")
    try:
        return store.get(file_id), store.describe(file_id)
    except FileNotFoundError:
        raise NotFoundError("File not found") from None


def delete_receipt(receipt_id: int, db: Session, store: BlobStore) -> bool:
    """
    Delete a receipt and its attached files.

    The row is removed and committed first; file deletions follow and are
    best-effort, each failure is logged. Returns True if both files were removed.
    """
    with transaction(db):
        receipt = get_receipt_or_404(receipt_id, db)
        file_ids = (receipt.pdf_file_id, receipt.xml_file_id)
        db.delete(receipt)

    logger.info("Deleted receipt %s", receipt_id)
    pdf_removed = _delete_blob(store, file_ids[0], "PDF")
    xml_removed = _delete_blob(store, file_ids[1], "XML")
    return pdf_removed and xml_removed
