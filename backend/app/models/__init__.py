"""Models package - Import all models for SQLAlchemy registration."""
from app.models.user import User, UserRole
from app.models.department import Department
from app.models.location import Country, City
from app.models.travel_request import (
    TravelRequest, Route, RouteRequest, RequestStatus, STATUS_LABELS
)
from app.models.receipt import Receipt, ReceiptType, ValidationState

__all__ = [
    "User",
    "UserRole",
    "Department",
    "Country",
    "City",
    "TravelRequest",
    "Route",
    "RouteRequest",
    "RequestStatus",
    "STATUS_LABELS",
    "Receipt",
    "ReceiptType",
    "ValidationState",
]
