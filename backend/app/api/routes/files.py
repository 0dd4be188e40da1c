"""
Receipt file routes: upload PDF/XML proofs and download them back.
"""
from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from app.api.dependencies import APPLICANT_ROLES, require_roles
from app.db.session import get_db
from app.models.user import User, UserRole
from app.schemas.receipt import ReceiptFilesResponse, ReceiptFileRef
from app.services import receipt_service
from app.services.file_storage import BlobStore, IncomingFile, get_blob_store

router = APIRouter(prefix="/files", tags=["files"])

file_user = require_roles(UserRole.ACCOUNTS_PAYABLE, *APPLICANT_ROLES)


def _iter_file(stream, chunk_size: int = 64 * 1024):
    with stream:
        for chunk in iter(lambda: stream.read(chunk_size), b""):
            yield chunk


async def _read_upload(upload: UploadFile) -> IncomingFile:
    return IncomingFile(
        data=await upload.read(),
        file_name=upload.filename or "",
        content_type=upload.content_type or "",
    )


@router.post("/receipts/{receipt_id}", response_model=ReceiptFilesResponse, status_code=status.HTTP_201_CREATED)
async def upload_receipt_files(
    receipt_id: int,
    pdf_file: UploadFile = File(...),
    xml_file: UploadFile = File(...),
    current_user: User = Depends(require_roles(*APPLICANT_ROLES)),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store)
):
    """Attach a PDF and an XML proof to a receipt."""
    stored = receipt_service.upload_receipt_files(
        receipt_id, await _read_upload(pdf_file), await _read_upload(xml_file), db, store
    )
    return ReceiptFilesResponse(
        receipt_id=receipt_id,
        pdf=ReceiptFileRef(file_id=stored["pdf"].file_id, file_name=stored["pdf"].file_name),
        xml=ReceiptFileRef(file_id=stored["xml"].file_id, file_name=stored["xml"].file_name),
    )


@router.get("/receipts/{receipt_id}", response_model=ReceiptFilesResponse)
async def get_receipt_files_metadata(
    receipt_id: int,
    current_user: User = Depends(file_user),
    db: Session = Depends(get_db)
):
    """Get file references recorded on a receipt."""
    files = receipt_service.get_receipt_files_metadata(receipt_id, db)
    return ReceiptFilesResponse(
        receipt_id=receipt_id,
        pdf=ReceiptFileRef(file_id=files["pdf"].file_id, file_name=files["pdf"].file_name),
        xml=ReceiptFileRef(file_id=files["xml"].file_id, file_name=files["xml"].file_name),
    )


@router.get("/{file_id}")
async def download_receipt_file(
    file_id: str,
    current_user: User = Depends(file_user),
    store: BlobStore = Depends(get_blob_store)
):
    """Stream a stored receipt file."""
    stream, description = receipt_service.open_receipt_file(file_id, store)
    return StreamingResponse(
        _iter_file(stream),
        media_type=description.get("content_type") or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{description.get("file_name", file_id)}"'},
    )
