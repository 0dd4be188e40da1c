"""
Travel request model and its itinerary routes.
"""
from sqlalchemy import (
    Column, String, Date, Time, Boolean, Numeric, ForeignKey, Integer, Text, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.db.base import Base, BaseModel
import enum


class RequestStatus(int, enum.Enum):
    """Request status codes."""
    DRAFT = 1
    FIRST_REVIEW = 2
    SECOND_REVIEW = 3
    TRIP_QUOTE = 4
    TRAVEL_AGENCY = 5
    EXPENSE_PROOF = 6
    RECEIPT_VALIDATION = 7
    FINALIZED = 8
    CANCELLED = 9
    DECLINED = 10

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    RequestStatus.DRAFT: "Draft",
    RequestStatus.FIRST_REVIEW: "First Review",
    RequestStatus.SECOND_REVIEW: "Second Review",
    RequestStatus.TRIP_QUOTE: "Trip Quote",
    RequestStatus.TRAVEL_AGENCY: "Travel Agency",
    RequestStatus.EXPENSE_PROOF: "Expense Proof",
    RequestStatus.RECEIPT_VALIDATION: "Receipt Validation",
    RequestStatus.FINALIZED: "Finalized",
    RequestStatus.CANCELLED: "Cancelled",
    RequestStatus.DECLINED: "Declined",
}


class TravelRequest(BaseModel):
    """Travel request owned by a user. Never deleted, only moved to a terminal status."""
    __tablename__ = "requests"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status_id = Column(Integer, nullable=False, default=RequestStatus.DRAFT.value, index=True)
    notes = Column(Text, nullable=True)
    requested_fee = Column(Numeric(12, 2), nullable=False, default=0)
    imposed_fee = Column(Numeric(12, 2), nullable=False, default=0)
    request_days = Column(Integer, nullable=False, default=0)

    # Relationships
    user = relationship("User", back_populates="requests")
    route_links = relationship("RouteRequest", back_populates="request")
    receipts = relationship("Receipt", back_populates="request")

    __table_args__ = (
        CheckConstraint("status_id BETWEEN 1 AND 10", name="ck_request_status_range"),
    )

    @property
    def status(self) -> RequestStatus:
        return RequestStatus(self.status_id)


class Route(BaseModel):
    """One origin -> destination leg of a trip."""
    __tablename__ = "routes"

    origin_country_id = Column(Integer, ForeignKey("countries.id"), nullable=False)
    origin_city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    destination_country_id = Column(Integer, ForeignKey("countries.id"), nullable=False)
    destination_city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    router_index = Column(Integer, nullable=False, default=0)  # Caller-assigned order within the request
    beginning_date = Column(Date, nullable=False)
    beginning_time = Column(Time, nullable=False)
    ending_date = Column(Date, nullable=False)
    ending_time = Column(Time, nullable=False)
    plane_needed = Column(Boolean, default=False, nullable=False)
    hotel_needed = Column(Boolean, default=False, nullable=False)

    # Relationships
    origin_country = relationship("Country", foreign_keys=[origin_country_id])
    origin_city = relationship("City", foreign_keys=[origin_city_id])
    destination_country = relationship("Country", foreign_keys=[destination_country_id])
    destination_city = relationship("City", foreign_keys=[destination_city_id])
    request_link = relationship("RouteRequest", back_populates="route", uselist=False)


class RouteRequest(Base):
    """Link table between a request and its routes."""
    __tablename__ = "route_requests"

    request_id = Column(Integer, ForeignKey("requests.id"), primary_key=True)
    route_id = Column(Integer, ForeignKey("routes.id"), primary_key=True)

    # Relationships
    request = relationship("TravelRequest", back_populates="route_links")
    route = relationship("Route", back_populates="request_link")
