"""
Pydantic schemas for travel requests and their routes.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, time, datetime
from decimal import Decimal


class RouteBase(BaseModel):
    """Route fields as sent by clients. Missing fields are defaulted by the service."""
    router_index: int = 0
    origin_country_name: Optional[str] = None
    origin_city_name: Optional[str] = None
    destination_country_name: Optional[str] = None
    destination_city_name: Optional[str] = None
    beginning_date: Optional[date] = None
    beginning_time: Optional[time] = None
    ending_date: Optional[date] = None
    ending_time: Optional[time] = None
    plane_needed: Optional[bool] = None
    hotel_needed: Optional[bool] = None


class RouteData(BaseModel):
    """Fully populated route ready to be persisted."""
    router_index: int
    origin_country_name: str
    origin_city_name: str
    destination_country_name: str
    destination_city_name: str
    beginning_date: date
    beginning_time: time
    ending_date: date
    ending_time: time
    plane_needed: bool = False
    hotel_needed: bool = False


class TravelRequestCreate(BaseModel):
    """Schema for request creation and edit: primary route plus optional extra routes."""
    router_index: int
    origin_country_name: str
    origin_city_name: str
    destination_country_name: str
    destination_city_name: str
    beginning_date: date
    beginning_time: time
    ending_date: date
    ending_time: time
    plane_needed: bool = False
    hotel_needed: bool = False
    notes: Optional[str] = None
    requested_fee: Decimal = Decimal(0)
    imposed_fee: Decimal = Decimal(0)
    additional_routes: List[RouteBase] = Field(default_factory=list)


class DraftRequestCreate(RouteBase):
    """Schema for draft creation; every field is optional."""
    notes: str = ""
    requested_fee: Decimal = Decimal(0)
    imposed_fee: Decimal = Decimal(0)
    additional_routes: List[RouteBase] = Field(default_factory=list)


class AttendRequest(BaseModel):
    """Accounts-payable attention payload."""
    imposed_fee: Decimal


class RequestActionResponse(BaseModel):
    """Result of a lifecycle action."""
    request_id: int
    message: str
    status_id: Optional[int] = None
    status: Optional[str] = None


class RouteResponse(BaseModel):
    """Schema for route response."""
    id: int
    router_index: int
    origin_country: str
    origin_city: str
    destination_country: str
    destination_city: str
    beginning_date: date
    beginning_time: time
    ending_date: date
    ending_time: time
    plane_needed: bool
    hotel_needed: bool


class TravelRequestResponse(BaseModel):
    """Schema for request response."""
    id: int
    user_id: int
    status_id: int
    status: str
    notes: Optional[str] = None
    requested_fee: Decimal
    imposed_fee: Decimal
    request_days: int
    created_at: datetime
    updated_at: datetime


class TravelRequestDetailResponse(TravelRequestResponse):
    """Schema for request response with ordered routes."""
    routes: List[RouteResponse] = []


class DepartmentRequestSummary(BaseModel):
    """Request row in a department's review queue."""
    request_id: int
    user_id: int
    user_name: str
    destination_country: Optional[str] = None
    beginning_date: Optional[date] = None
    ending_date: Optional[date] = None
    status_id: int
    status: str
