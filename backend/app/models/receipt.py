"""
Receipt model for reimbursement proofs attached to a request.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
import enum


class ValidationState(str, enum.Enum):
    """Accounts-payable decision on a single receipt."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ReceiptType(BaseModel):
    """Expense type a receipt belongs to (lodging, meals, ...)."""
    __tablename__ = "receipt_types"

    name = Column(String(100), unique=True, nullable=False)


class Receipt(BaseModel):
    """Receipt row; attached files live in the blob store."""
    __tablename__ = "receipts"

    request_id = Column(Integer, ForeignKey("requests.id"), nullable=False, index=True)
    receipt_type_id = Column(Integer, ForeignKey("receipt_types.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    validation = Column(SQLEnum(ValidationState), default=ValidationState.PENDING, nullable=False)
    pdf_file_id = Column(String(64), nullable=True)
    pdf_file_name = Column(String(255), nullable=True)
    xml_file_id = Column(String(64), nullable=True)
    xml_file_name = Column(String(255), nullable=True)

    # Relationships
    request = relationship("TravelRequest", back_populates="receipts")
    receipt_type = relationship("ReceiptType")
