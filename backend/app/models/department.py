"""
Department model. Users belong to a department, which carries their cost center.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from app.db.base import BaseModel


class Department(BaseModel):
    """Organizational unit that authorizers review requests for."""
    __tablename__ = "departments"

    name = Column(String(100), unique=True, nullable=False, index=True)
    costs_center = Column(String(100), nullable=False)

    # Relationships
    users = relationship("User", back_populates="department")
