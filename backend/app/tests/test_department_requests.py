"""
Tests for department review queues, applicant profiles and cost centers.
"""
from datetime import date
import pytest
from app.core.errors import NotFoundError, ValidationFailedError
from app.models.department import Department
from app.models.travel_request import RequestStatus, TravelRequest
from app.models.user import UserRole
from app.services import request_service, user_service
from app.tests.factories import auth_headers, create_user, extra_route, make_details


@pytest.fixture
def departments(db):
    sales = Department(name="Sales", costs_center="CC-100")
    finance = Department(name="Finance", costs_center="CC-200")
    db.add_all([sales, finance])
    db.commit()
    return {"sales": sales, "finance": finance}


@pytest.fixture
def staff(db, departments):
    """Requesters and authorizers split across two departments."""
    return {
        "seller": create_user(db, UserRole.REQUESTER, "seller", department=departments["sales"]),
        "accountant": create_user(db, UserRole.REQUESTER, "accountant", department=departments["finance"]),
        "sales_n1": create_user(db, UserRole.AUTHORIZER_N1, "sales_n1", department=departments["sales"]),
        "sales_n2": create_user(db, UserRole.AUTHORIZER_N2, "sales_n2", department=departments["sales"]),
        "no_department_n1": create_user(db, UserRole.AUTHORIZER_N1, "floating_n1"),
    }


def test_department_requests_filter_by_department_and_status(db, departments, staff):
    seller = staff["seller"].id
    older = request_service.create_travel_request(seller, make_details(), db)
    newer = request_service.create_travel_request(
        seller, make_details(additional_routes=[extra_route(2), extra_route(3)]), db
    )
    request_service.create_travel_request(staff["accountant"].id, make_details(), db)
    request_service.create_draft_travel_request(seller, make_details(), db)

    rows = request_service.list_department_requests(
        departments["sales"].id, RequestStatus.FIRST_REVIEW.value, db
    )

    assert [row["request_id"] for row in rows] == [newer, older]
    assert rows[0]["user_name"] == "seller"
    assert rows[0]["destination_country"] == "USA"
    assert rows[0]["beginning_date"] == date(2025, 5, 1)
    assert rows[0]["ending_date"] == date(2025, 5, 4)
    assert rows[0]["status"] == "First Review"


def test_department_requests_limit(db, departments, staff):
    for _ in range(3):
        request_service.create_travel_request(staff["seller"].id, make_details(), db)

    sales_id = departments["sales"].id
    assert len(request_service.list_department_requests(sales_id, 2, db, limit=2)) == 2
    assert len(request_service.list_department_requests(sales_id, 2, db, limit=0)) == 3


def test_department_requests_unknown_status(db, departments):
    with pytest.raises(ValidationFailedError) as exc_info:
        request_service.list_department_requests(departments["sales"].id, 11, db)
    assert exc_info.value.field_name == "status_id"


def test_applicant_profile(db, staff):
    assert user_service.get_applicant_profile(staff["seller"].id, db) == {
        "user_id": staff["seller"].id,
        "user_name": "seller",
    }


def test_applicant_profile_missing(db):
    with pytest.raises(NotFoundError):
        user_service.get_applicant_profile(500, db)


def test_cost_center(db, staff):
    assert user_service.get_cost_center(staff["accountant"].id, db) == {
        "department_name": "Finance",
        "costs_center": "CC-200",
    }


def test_cost_center_without_department(db, staff):
    with pytest.raises(NotFoundError) as exc_info:
        user_service.get_cost_center(staff["no_department_n1"].id, db)
    assert exc_info.value.message == f"Cost center not found for user_id {staff['no_department_n1'].id}"


def test_authorizer_queue_defaults_to_their_review_level(client, db, staff):
    """Level-1 sees first-review requests, level-2 sees second-review ones."""
    first = request_service.create_travel_request(staff["seller"].id, make_details(), db)
    second = request_service.create_travel_request(staff["seller"].id, make_details(), db)
    request = db.query(TravelRequest).filter(TravelRequest.id == second).one()
    request.status_id = RequestStatus.SECOND_REVIEW.value
    db.commit()

    n1_rows = client.get("/api/authorizer/requests", headers=auth_headers(staff["sales_n1"])).json()
    n2_rows = client.get("/api/authorizer/requests", headers=auth_headers(staff["sales_n2"])).json()

    assert [row["request_id"] for row in n1_rows] == [first]
    assert [row["request_id"] for row in n2_rows] == [second]


def test_authorizer_queue_with_status_and_limit(client, db, staff):
    for _ in range(3):
        request_service.create_travel_request(staff["seller"].id, make_details(), db)

    response = client.get(
        "/api/authorizer/requests", params={"status_id": 2, "n": 2}, headers=auth_headers(staff["sales_n2"])
    )

    assert response.status_code == 200
    assert len(response.json()) == 2


def test_authorizer_queue_bad_status(client, staff):
    response = client.get(
        "/api/authorizer/requests", params={"status_id": 0}, headers=auth_headers(staff["sales_n1"])
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Unknown status: 0"}


def test_authorizer_queue_without_department(client, db, staff):
    request_service.create_travel_request(staff["seller"].id, make_details(), db)
    response = client.get("/api/authorizer/requests", headers=auth_headers(staff["no_department_n1"]))
    assert response.json() == []


def test_authorizer_queue_refused_for_requesters(client, staff):
    response = client.get("/api/authorizer/requests", headers=auth_headers(staff["seller"]))
    assert response.status_code == 400


def test_profile_and_cost_center_routes(client, staff):
    headers = auth_headers(staff["seller"])

    assert client.get("/api/applicant/profile", headers=headers).json()["user_name"] == "seller"
    assert client.get("/api/applicant/cost-center", headers=headers).json() == {
        "department_name": "Sales",
        "costs_center": "CC-100",
    }
