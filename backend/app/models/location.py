"""
Country and city lookup tables referenced by itinerary routes.
"""
from sqlalchemy import Column, String
from app.db.base import BaseModel


class Country(BaseModel):
    """Country looked up by exact name."""
    __tablename__ = "countries"

    name = Column(String(100), unique=True, nullable=False, index=True)


class City(BaseModel):
    """City looked up by exact name."""
    __tablename__ = "cities"

    name = Column(String(100), unique=True, nullable=False, index=True)
