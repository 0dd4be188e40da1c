"""
User service: applicant profile and department cost-center lookups.
"""
from typing import Dict
from sqlalchemy.orm import Session
from app.core.errors import NotFoundError
from app.models.department import Department
from app.models.user import User


def get_user_or_404(user_id: int, db: Session) -> User:
    """Load a user or raise NotFoundError."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("Applicant not found")
    return user


def get_applicant_profile(user_id: int, db: Session) -> Dict[str, object]:
    """Public profile of an applicant."""
    user = get_user_or_404(user_id, db)
    return {"user_id": user.id, "user_name": user.user_name}


def get_cost_center(user_id: int, db: Session) -> Dict[str, str]:
    """Department name and cost center the user's trips are charged to."""
    row = db.query(Department.name, Department.costs_center).join(
        User, User.department_id == Department.id
    ).filter(User.id == user_id).first()
    if not row:
        raise NotFoundError(f"Cost center not found for user_id {user_id}")
    return {"department_name": row.name, "costs_center": row.costs_center}
