# triptrack/services/trip_service.py
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from triptrack.errors import FormError, NotFound, PermissionDenied
from triptrack.models import Trip, TripMember, User
from triptrack.models.common import utc_now

logger = logging.getLogger("triptrack.trips")

AMOUNT_QUANTUM = Decimal("0.01")
# Numeric(12, 2) leaves ten digits before the point
MAX_INTEGER_DIGITS = 10


def parse_positive_amount(raw, message: str) -> Decimal:
    """Parse a money amount > 0 with at most two decimal places.

    Values with more precision, or too large for the column, are rejected
    rather than rounded.
    """
    try:
        value = Decimal(str(raw).strip())
        if not value.is_finite() or value <= 0 or not fits_column(value):
            raise FormError(message)
        exact = value == value.quantize(AMOUNT_QUANTUM)
    except (InvalidOperation, ValueError):
        raise FormError(message)
    if not exact:
        raise FormError(message)
    return value


def fits_column(value: Decimal) -> bool:
    return value.adjusted() < MAX_INTEGER_DIGITS


def parse_target_date(raw) -> date:
    if isinstance(raw, date):
        return raw
    if not raw or not str(raw).strip():
        raise FormError("Please select a target date")
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise FormError("Please select a valid target date")


def _optional_text(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


@dataclass
class TripForm:
    name: str
    target_date: date
    target_amount: Decimal
    description: Optional[str] = None
    location: Optional[str] = None
    place_description: Optional[str] = None
    photos: Optional[List[str]] = field(default=None)

    @classmethod
    def parse(cls, name, target_date, target_amount, description=None, location=None,
              place_description=None, photos: Optional[Sequence[str]] = None) -> "TripForm":
        name = (name or "").strip()
        if not name:
            raise FormError("Please enter a trip name")
        parsed_date = parse_target_date(target_date)
        if target_amount is None or str(target_amount).strip() == "":
            raise FormError("Please enter a valid target amount")
        amount = parse_positive_amount(target_amount, "Please enter a valid target amount")
        urls = [p.strip() for p in (photos or []) if p and p.strip()]
        return cls(
            name=name,
            target_date=parsed_date,
            target_amount=amount,
            description=_optional_text(description),
            location=_optional_text(location),
            place_description=_optional_text(place_description),
            photos=urls or None,
        )


def create_trip(session: Session, actor: User, form: TripForm) -> Trip:
    trip = Trip(
        name=form.name,
        description=form.description,
        target_date=form.target_date,
        target_amount=form.target_amount,
        location=form.location,
        place_description=form.place_description,
        photos=form.photos,
        created_by=actor.id,
    )
    session.add(trip); session.commit(); session.refresh(trip)
    logger.info("Trip %s created by %s", trip.id, actor.id)
    return trip


def update_trip(session: Session, actor: User, trip_id: int, form: TripForm) -> Trip:
    trip = get_owned_trip(session, actor, trip_id)
    trip.name = form.name
    trip.description = form.description
    trip.target_date = form.target_date
    trip.target_amount = form.target_amount
    trip.location = form.location
    trip.place_description = form.place_description
    trip.photos = form.photos
    trip.updated_at = utc_now()
    session.add(trip); session.commit(); session.refresh(trip)
    return trip


def delete_trip(session: Session, actor: User, trip_id: int):
    trip = get_owned_trip(session, actor, trip_id)
    session.delete(trip)
    session.commit()
    logger.info("Trip %s deleted by %s", trip_id, actor.id)


def _with_members():
    return selectinload(Trip.members).selectinload(TripMember.user)


def list_trips(session: Session, actor: User) -> List[Trip]:
    stmt = (
        select(Trip)
        .where(Trip.created_by == actor.id)
        .options(_with_members())
        .order_by(Trip.target_date)
    )
    return list(session.exec(stmt).all())


def load_trip(session: Session, trip_id: int) -> Trip:
    """Trip with members and their profiles, without any scope check."""
    stmt = select(Trip).where(Trip.id == trip_id).options(_with_members())
    trip = session.exec(stmt).first()
    if not trip:
        raise NotFound("Trip not found")
    return trip


def get_owned_trip(session: Session, actor: User, trip_id: int) -> Trip:
    trip = load_trip(session, trip_id)
    if trip.created_by != actor.id:
        raise PermissionDenied("this trip belongs to another admin")
    return trip
