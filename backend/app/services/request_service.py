"""
Request service for creating, editing and reading travel requests with their routes.
"""
import logging
import math
from datetime import date, time, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from app.core.errors import ValidationFailedError
from app.db.session import transaction
from app.models.travel_request import TravelRequest, Route, RouteRequest, RequestStatus
from app.models.user import User
from app.schemas.travel_request import (
    RouteBase, RouteData, TravelRequestCreate, DraftRequestCreate
)
from app.services.location_service import resolve_country_id, resolve_city_id
from app.services.status_service import (
    Action, check_transition, get_request_or_404, get_user_role, initial_status_for_role
)

logger = logging.getLogger(__name__)

# Placeholders for route fields the user has not filled in yet
UNSELECTED = "notSelected"
SENTINEL_DATE = date.min
SENTINEL_TIME = time(0, 0)

ROUTE_FIELDS = set(RouteData.model_fields)

COMPLETED_STATUSES = (
    RequestStatus.FINALIZED.value,
    RequestStatus.CANCELLED.value,
    RequestStatus.DECLINED.value,
)


def normalize_route(route: RouteBase) -> RouteData:
    """Fill every missing route field with its placeholder value."""
    return RouteData(
        router_index=route.router_index,
        origin_country_name=route.origin_country_name or UNSELECTED,
        origin_city_name=route.origin_city_name or UNSELECTED,
        destination_country_name=route.destination_country_name or UNSELECTED,
        destination_city_name=route.destination_city_name or UNSELECTED,
        beginning_date=route.beginning_date or SENTINEL_DATE,
        beginning_time=route.beginning_time or SENTINEL_TIME,
        ending_date=route.ending_date or SENTINEL_DATE,
        ending_time=route.ending_time or SENTINEL_TIME,
        plane_needed=route.plane_needed or False,
        hotel_needed=route.hotel_needed or False,
    )


def format_routes(main_route: RouteData, additional_routes: Sequence[RouteBase] = ()) -> List[RouteData]:
    """Primary route as given, followed by the additional routes with defaults applied."""
    return [main_route] + [normalize_route(route) for route in additional_routes]


def get_request_days(routes: Sequence[RouteData]) -> int:
    """
    Days spanned by the trip, rounded up.

    Measured from the start of the route with the lowest router_index to
    the end of the route with the highest one. Returns 0 for no routes.
    """
    if not routes:
        return 0

    ordered = sorted(routes, key=lambda r: r.router_index)
    first, last = ordered[0], ordered[-1]
    start = datetime.combine(first.beginning_date, first.beginning_time)
    end = datetime.combine(last.ending_date, last.ending_time)

    return math.ceil((end - start) / timedelta(days=1))


def _primary_route(details: TravelRequestCreate) -> RouteData:
    return RouteData(**details.model_dump(include=ROUTE_FIELDS))


def _insert_routes(request_id: int, routes: Sequence[RouteData], db: Session) -> None:
    """Insert routes and their link rows. Any failure propagates to abort the transaction."""
    for route in routes:
        try:
            new_route = Route(
                origin_country_id=resolve_country_id(route.origin_country_name, db),
                origin_city_id=resolve_city_id(route.origin_city_name, db),
                destination_country_id=resolve_country_id(route.destination_country_name, db),
                destination_city_id=resolve_city_id(route.destination_city_name, db),
                router_index=route.router_index,
                beginning_date=route.beginning_date,
                beginning_time=route.beginning_time,
                ending_date=route.ending_date,
                ending_time=route.ending_time,
                plane_needed=route.plane_needed,
                hotel_needed=route.hotel_needed,
            )
            db.add(new_route)
            db.flush()

            db.add(RouteRequest(request_id=request_id, route_id=new_route.id))
            db.flush()
        except Exception:
            logger.error("Error processing route %s of request %s", route.router_index, request_id)
            raise


def _insert_request(
    user_id: int,
    status: RequestStatus,
    notes,
    requested_fee,
    imposed_fee,
    routes: List[RouteData],
    db: Session
) -> int:
    request = TravelRequest(
        user_id=user_id,
        status_id=status.value,
        notes=notes,
        requested_fee=requested_fee,
        imposed_fee=imposed_fee,
        request_days=get_request_days(routes),
    )
    db.add(request)
    db.flush()

    _insert_routes(request.id, routes, db)
    return request.id


def create_travel_request(user_id: int, details: TravelRequestCreate, db: Session) -> int:
    """
    Create a submitted request with all its routes in one transaction.

    The initial status depends on the creating user's role; a role that
    may not submit requests aborts before anything is written.
    """
    routes = format_routes(_primary_route(details), details.additional_routes)

    with transaction(db):
        role = get_user_role(user_id, db)
        status = check_transition(Action.CREATE, None, initial_status_for_role(role))
        request_id = _insert_request(
            user_id, status, details.notes, details.requested_fee, details.imposed_fee, routes, db
        )

    logger.info("Created travel request %s for user %s in status %s", request_id, user_id, status.name)
    return request_id


def create_draft_travel_request(user_id: int, details: DraftRequestCreate, db: Session) -> int:
    """Save a draft; every field, including the primary route, may be left empty."""
    routes = format_routes(normalize_route(details), details.additional_routes)

    with transaction(db):
        get_user_role(user_id, db)
        status = check_transition(Action.SAVE_DRAFT, None, RequestStatus.DRAFT)
        request_id = _insert_request(
            user_id, status, details.notes, details.requested_fee, details.imposed_fee, routes, db
        )

    logger.info("Saved draft travel request %s for user %s", request_id, user_id)
    return request_id


def edit_travel_request(request_id: int, details: TravelRequestCreate, db: Session) -> int:
    """
    Update request fields and replace its whole route set.

    Old link rows and the routes they point to are deleted before the new
    routes are inserted, all in one transaction; on failure the previous
    route set stays in place.
    """
    routes = format_routes(_primary_route(details), details.additional_routes)

    with transaction(db):
        request = get_request_or_404(request_id, db)
        request.notes = details.notes
        request.requested_fee = details.requested_fee
        request.imposed_fee = details.imposed_fee
        request.request_days = get_request_days(routes)
        request.updated_at = func.now()

        old_route_ids = [
            row.route_id for row in
            db.query(RouteRequest.route_id).filter(RouteRequest.request_id == request_id).all()
        ]
        db.query(RouteRequest).filter(RouteRequest.request_id == request_id).delete()
        if old_route_ids:
            db.query(Route).filter(Route.id.in_(old_route_ids)).delete()
        db.flush()

        _insert_routes(request_id, routes, db)

    logger.info("Edited travel request %s: replaced %d routes with %d", request_id, len(old_route_ids), len(routes))
    return request_id


def get_request_routes(request_id: int, db: Session) -> List[Route]:
    """Routes of a request ordered by router_index."""
    return db.query(Route).options(
        joinedload(Route.origin_country),
        joinedload(Route.origin_city),
        joinedload(Route.destination_country),
        joinedload(Route.destination_city),
    ).join(
        RouteRequest, RouteRequest.route_id == Route.id
    ).filter(
        RouteRequest.request_id == request_id
    ).order_by(Route.router_index, Route.id).all()


def get_request_detail(request_id: int, db: Session) -> Tuple[TravelRequest, List[Route]]:
    """Request with its ordered routes."""
    request = get_request_or_404(request_id, db)
    return request, get_request_routes(request_id, db)


def list_active_requests(user_id: int, db: Session) -> List[TravelRequest]:
    """Requests of a user that are still moving through the workflow."""
    return db.query(TravelRequest).filter(
        TravelRequest.user_id == user_id,
        TravelRequest.status_id.notin_(COMPLETED_STATUSES)
    ).order_by(TravelRequest.id.desc()).all()


def list_completed_requests(user_id: int, db: Session) -> List[TravelRequest]:
    """Requests of a user that are finalized, cancelled or declined."""
    return db.query(TravelRequest).filter(
        TravelRequest.user_id == user_id,
        TravelRequest.status_id.in_(COMPLETED_STATUSES)
    ).order_by(TravelRequest.id.desc()).all()


def list_department_requests(
    department_id: int,
    status_id: int,
    db: Session,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Requests raised by members of a department that sit in one status.

    Newest first. Each row carries the destination country of the first
    route and the date span of the whole itinerary. ``limit`` of None or 0
    returns every match.
    """
    try:
        status = RequestStatus(status_id)
    except ValueError:
        raise ValidationFailedError(f"Unknown status: {status_id}", field_name="status_id") from None

    query = db.query(TravelRequest, User.user_name).join(
        User, TravelRequest.user_id == User.id
    ).filter(
        User.department_id == department_id,
        TravelRequest.status_id == status.value
    ).order_by(TravelRequest.created_at.desc(), TravelRequest.id.desc())
    if limit:
        query = query.limit(limit)

    summaries = []
    for request, user_name in query.all():
        routes = get_request_routes(request.id, db)
        first, last = (routes[0], routes[-1]) if routes else (None, None)
        summaries.append({
            "request_id": request.id,
            "user_id": request.user_id,
            "user_name": user_name,
            "destination_country": first.destination_country.name if first else None,
            "beginning_date": first.beginning_date if first else None,
            "ending_date": last.ending_date if last else None,
            "status_id": status.value,
            "status": status.label,
        })
    return summaries
