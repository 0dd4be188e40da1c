"""
Builders for test data.
"""
from datetime import date, time
from app.core.pii import encrypt_contact
from app.core.security import create_access_token
from app.models.user import User, UserRole
from app.schemas.travel_request import TravelRequestCreate, RouteBase


class RecordingNotifier:
    """Notifier that keeps every notification in memory."""

    def __init__(self):
        self.sent = []

    def notify(self, recipient_contact, recipient_name, request_id, status_label):
        self.sent.append((recipient_contact, recipient_name, request_id, status_label))


def create_user(db, role, name: str, email: str = None, department=None) -> User:
    user = User(
        user_name=name,
        email_encrypted=encrypt_contact(email or f"{name}@example.com"),
        role_id=int(role),
        department_id=department.id if department is not None else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_details(additional_routes=None, **overrides) -> TravelRequestCreate:
    """Request payload with one Mexico -> USA route on 2025-05-01 09:00 to 2025-05-02 09:00."""
    fields = dict(
        router_index=1,
        origin_country_name="Mexico",
        origin_city_name="Monterrey",
        destination_country_name="USA",
        destination_city_name="Austin",
        beginning_date=date(2025, 5, 1),
        beginning_time=time(9, 0),
        ending_date=date(2025, 5, 2),
        ending_time=time(9, 0),
        plane_needed=False,
        hotel_needed=False,
        notes="Client visit",
        requested_fee=1500,
    )
    fields.update(overrides)
    return TravelRequestCreate(additional_routes=additional_routes or [], **fields)


def extra_route(index: int, **overrides) -> RouteBase:
    """Additional same-day route on May (index + 1)."""
    fields = dict(
        router_index=index,
        origin_country_name="USA",
        origin_city_name="Austin",
        destination_country_name="USA",
        destination_city_name=f"City {index}",
        beginning_date=date(2025, 5, index + 1),
        beginning_time=time(10, 0),
        ending_date=date(2025, 5, index + 1),
        ending_time=time(18, 0),
    )
    fields.update(overrides)
    return RouteBase(**fields)


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.user_name, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}
