"""
Location service: get-or-create lookups for country and city names.
"""
import logging
from typing import Type, Union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.models.location import Country, City

logger = logging.getLogger(__name__)

LocationModel = Union[Type[Country], Type[City]]


def resolve_location_id(model: LocationModel, name: str, db: Session) -> int:
    """
    Return the id of the row with this exact name, inserting it if absent.

    Names are matched as given (no case folding or trimming). The insert
    runs inside a savepoint: if a concurrent transaction inserted the same
    name first, the unique constraint fires, the savepoint is rolled back
    and the row committed by the other transaction is returned instead.
    """
    existing = db.query(model).filter(model.name == name).first()
    if existing:
        return existing.id

    try:
        with db.begin_nested():
            row = model(name=name)
            db.add(row)
            db.flush()
        return row.id
    except IntegrityError:
        logger.info("%s %r inserted concurrently; reusing existing row", model.__name__, name)
        return db.query(model).filter(model.name == name).one().id


def resolve_country_id(name: str, db: Session) -> int:
    """Get or create a country by name."""
    return resolve_location_id(Country, name, db)


def resolve_city_id(name: str, db: Session) -> int:
    """Get or create a city by name."""
    return resolve_location_id(City, name, db)
