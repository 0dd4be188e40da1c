"""
User model for actors taking part in the request workflow.
"""
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
import enum


class UserRole(int, enum.Enum):
    """Role identifiers assigned to users."""
    REQUESTER = 1
    ADMIN = 2
    ACCOUNTS_PAYABLE = 3
    AUTHORIZER_N1 = 4
    AUTHORIZER_N2 = 5
    TRAVEL_AGENCY = 6


class User(BaseModel):
    """User model. Contact e-mail is stored encrypted."""
    __tablename__ = "users"

    user_name = Column(String(100), unique=True, nullable=False, index=True)
    email_encrypted = Column(String(512), nullable=False)
    role_id = Column(Integer, nullable=False, default=UserRole.REQUESTER.value)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    requests = relationship("TravelRequest", back_populates="user")
    department = relationship("Department", back_populates="users")

    @property
    def role(self) -> UserRole:
        return UserRole(self.role_id)
