"""
Pydantic schemas for user-facing lookups.
"""
from pydantic import BaseModel


class ApplicantProfile(BaseModel):
    """Schema for applicant profile response."""
    user_id: int
    user_name: str


class CostCenterResponse(BaseModel):
    """Schema for department cost center response."""
    department_name: str
    costs_center: str
