"""
Tests for request creation, drafts, edits and trip-day computation.
"""
from datetime import date, datetime, time
import pytest
from sqlalchemy.exc import OperationalError
from app.core.errors import ErrorKind, NotFoundError, PersistenceError, UnauthorizedError
from app.models.location import City, Country
from app.models.travel_request import Route, RouteRequest, TravelRequest, RequestStatus
from app.models.user import UserRole
from app.schemas.travel_request import DraftRequestCreate, RouteBase, RouteData
from app.services import request_service
from app.services.request_service import (
    SENTINEL_DATE, SENTINEL_TIME, UNSELECTED, get_request_days, normalize_route
)
from app.tests.factories import create_user, extra_route, make_details


def route_data(index, start, end):
    return RouteData(
        router_index=index,
        origin_country_name="A", origin_city_name="a",
        destination_country_name="B", destination_city_name="b",
        beginning_date=start.date(), beginning_time=start.time(),
        ending_date=end.date(), ending_time=end.time(),
    )


def dt(day, hour, minute=0):
    return datetime(2025, 5, day, hour, minute)


def count_rows(db, request_id):
    db.expire_all()
    links = db.query(RouteRequest).filter(RouteRequest.request_id == request_id).all()
    return len(links), db.query(Route).count()


def test_request_days_exactly_24_hours():
    """A single route from 09:00 to 09:00 the next day is one day."""
    assert get_request_days([route_data(1, dt(1, 9), dt(2, 9))]) == 1


def test_request_days_rounds_partial_day_up():
    """09:00 to 17:00 the same day rounds up to one day."""
    assert get_request_days([route_data(1, dt(1, 9), dt(1, 17))]) == 1


def test_request_days_zero_length_route():
    """A route that starts and ends at the same instant spans zero days."""
    assert get_request_days([route_data(1, dt(1, 9), dt(1, 9))]) == 0


def test_request_days_just_over_a_day():
    """One minute past 24 hours rounds up to two days."""
    assert get_request_days([route_data(1, dt(1, 9), dt(2, 9, 1))]) == 2


def test_request_days_no_routes():
    """No routes means zero days."""
    assert get_request_days([]) == 0


def test_request_days_uses_router_index_not_list_order():
    """Start comes from the lowest index, end from the highest, whatever the list order."""
    routes = [
        route_data(3, dt(5, 8), dt(6, 20)),
        route_data(1, dt(1, 9), dt(1, 18)),
        route_data(2, dt(2, 9), dt(3, 12)),
    ]
    # May 1 09:00 -> May 6 20:00 = 5 days 11 hours
    assert get_request_days(routes) == 6


def test_normalize_route_fills_placeholders():
    """Missing fields on additional routes get placeholder values."""
    route = normalize_route(RouteBase(router_index=2, origin_city_name="Lima"))
    assert route.origin_city_name == "Lima"
    assert route.origin_country_name == UNSELECTED
    assert route.destination_city_name == UNSELECTED
    assert route.beginning_date == SENTINEL_DATE
    assert route.ending_time == SENTINEL_TIME
    assert route.plane_needed is False
    assert route.hotel_needed is False


@pytest.mark.parametrize("role,expected", [
    (UserRole.REQUESTER, RequestStatus.FIRST_REVIEW),
    (UserRole.AUTHORIZER_N1, RequestStatus.SECOND_REVIEW),
    (UserRole.AUTHORIZER_N2, RequestStatus.TRIP_QUOTE),
])
def test_create_sets_initial_status_from_role(db, users, role, expected):
    """Initial status depends only on the creator's role."""
    request_id = request_service.create_travel_request(users[role].id, make_details(), db)
    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.status == expected
    assert request.request_days == 1
    assert request.user_id == users[role].id


@pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.ACCOUNTS_PAYABLE, UserRole.TRAVEL_AGENCY])
def test_create_rejects_other_roles_and_writes_nothing(db, users, role):
    """Roles outside the three creator roles cannot create requests."""
    with pytest.raises(UnauthorizedError) as exc_info:
        request_service.create_travel_request(users[role].id, make_details(), db)

    assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
    assert db.query(TravelRequest).count() == 0
    assert db.query(Route).count() == 0
    assert db.query(RouteRequest).count() == 0
    assert db.query(Country).count() == 0


def test_create_unknown_user(db):
    """Creating for a user that does not exist is a NotFound error."""
    with pytest.raises(NotFoundError):
        request_service.create_travel_request(999, make_details(), db)


def test_create_writes_all_routes_and_links(db, users):
    """Primary and additional routes are stored and linked to the request."""
    details = make_details(additional_routes=[extra_route(2), extra_route(3)])
    request_id = request_service.create_travel_request(users[UserRole.REQUESTER].id, details, db)

    routes = request_service.get_request_routes(request_id, db)
    assert [r.router_index for r in routes] == [1, 2, 3]
    assert routes[0].origin_city.name == "Monterrey"
    assert routes[2].destination_city.name == "City 3"
    # May 1 09:00 -> May 4 18:00
    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.request_days == 4


def test_create_reuses_locations(db, users):
    """Country and city rows are shared across routes and requests."""
    requester = users[UserRole.REQUESTER].id
    request_service.create_travel_request(requester, make_details(), db)
    request_service.create_travel_request(requester, make_details(), db)

    assert db.query(Country).count() == 2
    assert db.query(City).count() == 2


def test_create_rolls_back_when_a_route_fails(db, users, monkeypatch):
    """A failure on any route leaves no request, routes or links behind."""
    real_resolve = request_service.resolve_city_id
    calls = {"n": 0}

    def failing_resolve(name, session):
        calls["n"] += 1
        if calls["n"] > 2:
            raise OperationalError("INSERT INTO cities", {}, Exception("disk I/O error"))
        return real_resolve(name, session)

    monkeypatch.setattr(request_service, "resolve_city_id", failing_resolve)
    details = make_details(additional_routes=[extra_route(2)])

    with pytest.raises(PersistenceError) as exc_info:
        request_service.create_travel_request(users[UserRole.REQUESTER].id, details, db)

    assert exc_info.value.message == "Persistence failed"
    assert db.query(TravelRequest).count() == 0
    assert db.query(Route).count() == 0
    assert db.query(RouteRequest).count() == 0
    assert db.query(City).count() == 0


def test_create_draft_defaults_everything(db, users):
    """A draft with no fields is stored with placeholders and Draft status."""
    request_id = request_service.create_draft_travel_request(
        users[UserRole.REQUESTER].id, DraftRequestCreate(), db
    )

    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.status == RequestStatus.DRAFT
    assert request.notes == ""
    assert request.request_days == 0

    routes = request_service.get_request_routes(request_id, db)
    assert len(routes) == 1
    assert routes[0].origin_country.name == UNSELECTED
    assert routes[0].beginning_date == SENTINEL_DATE


def test_create_draft_any_role(db, users):
    """Saving a draft does not depend on role."""
    request_id = request_service.create_draft_travel_request(
        users[UserRole.TRAVEL_AGENCY].id, DraftRequestCreate(notes="later"), db
    )
    assert db.query(TravelRequest).filter(TravelRequest.id == request_id).one().status == RequestStatus.DRAFT


@pytest.mark.parametrize("before,after", [(3, 1), (1, 3), (2, 2), (4, 0)])
def test_edit_replaces_route_set(db, users, before, after):
    """After an edit the request has exactly the new routes and no orphans."""
    requester = users[UserRole.REQUESTER].id
    request_id = request_service.create_travel_request(
        requester, make_details(additional_routes=[extra_route(i) for i in range(2, before + 1)]), db
    )
    other_id = request_service.create_travel_request(requester, make_details(), db)

    request_service.edit_travel_request(
        request_id,
        make_details(additional_routes=[extra_route(i) for i in range(2, after + 2)], notes="edited"),
        db
    )

    links, total_routes = count_rows(db, request_id)
    assert links == after + 1
    # The other request's single route is untouched
    assert total_routes == after + 1 + 1
    assert len(request_service.get_request_routes(other_id, db)) == 1

    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.notes == "edited"


def test_edit_updates_fees_and_days(db, users):
    """Edit recomputes the trip length and stores new fees."""
    request_id = request_service.create_travel_request(users[UserRole.REQUESTER].id, make_details(), db)

    request_service.edit_travel_request(
        request_id,
        make_details(ending_date=date(2025, 5, 4), ending_time=time(12, 0), requested_fee=900, imposed_fee=50),
        db
    )

    db.expire_all()
    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.request_days == 4
    assert request.requested_fee == 900
    assert request.imposed_fee == 50


def test_edit_failure_keeps_previous_routes(db, users, monkeypatch):
    """If inserting a new route fails, the old route set is still there."""
    request_id = request_service.create_travel_request(
        users[UserRole.REQUESTER].id, make_details(additional_routes=[extra_route(2)]), db
    )

    def failing_resolve(name, session):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(request_service, "resolve_country_id", failing_resolve)

    with pytest.raises(PersistenceError):
        request_service.edit_travel_request(request_id, make_details(notes="lost edit"), db)

    routes = request_service.get_request_routes(request_id, db)
    assert [r.router_index for r in routes] == [1, 2]
    request = db.query(TravelRequest).filter(TravelRequest.id == request_id).one()
    assert request.notes == "Client visit"


def test_edit_missing_request(db):
    """Editing a request that does not exist is a NotFound error."""
    with pytest.raises(NotFoundError):
        request_service.edit_travel_request(42, make_details(), db)


def test_active_and_completed_lists(db, users):
    """Terminal requests are listed as completed, the rest as active."""
    requester = users[UserRole.REQUESTER].id
    active_id = request_service.create_travel_request(requester, make_details(), db)
    done_id = request_service.create_travel_request(requester, make_details(), db)
    request = db.query(TravelRequest).filter(TravelRequest.id == done_id).one()
    request.status_id = RequestStatus.DECLINED.value
    db.commit()

    assert [r.id for r in request_service.list_active_requests(requester, db)] == [active_id]
    assert [r.id for r in request_service.list_completed_requests(requester, db)] == [done_id]


def test_create_with_unknown_role_id_is_refused(db):
    """A stored role id outside the known roles is refused, not treated as a store failure."""
    user = create_user(db, 7, "legacy_role")

    with pytest.raises(UnauthorizedError) as exc_info:
        request_service.create_travel_request(user.id, make_details(), db)

    assert exc_info.value.role == 7
    assert db.query(TravelRequest).count() == 0
    assert db.query(Route).count() == 0
