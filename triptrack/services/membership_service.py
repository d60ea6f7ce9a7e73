# triptrack/services/membership_service.py
import logging
from decimal import Decimal
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from triptrack.errors import NotFound
from triptrack.models import Trip, TripMember, User
from triptrack.services.trip_service import get_owned_trip
from triptrack.services.user_service import get_scoped_user, list_users

logger = logging.getLogger("triptrack.members")


def available_users(session: Session, actor: User, trip: Trip) -> List[User]:
    """Users in the actor's scope that are not yet members of the trip."""
    member_ids = {m.user_id for m in trip.members}
    return [u for u in list_users(session, actor) if u.id not in member_ids]


def add_member(session: Session, actor: User, trip_id: int, user_id: int) -> TripMember:
    trip = get_owned_trip(session, actor, trip_id)
    user = get_scoped_user(session, actor, user_id)
    member = TripMember(trip_id=trip.id, user_id=user.id, current_savings=Decimal("0"))
    session.add(member)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    session.refresh(member)
    logger.info("User %s joined trip %s", user.id, trip.id)
    return member


def remove_member(session: Session, actor: User, trip_id: int, member_id: int):
    """Hard delete. Savings history for the member is kept."""
    trip = get_owned_trip(session, actor, trip_id)
    member = session.exec(
        select(TripMember).where(TripMember.id == member_id, TripMember.trip_id == trip.id)
    ).first()
    if not member:
        raise NotFound("Member not found")
    session.delete(member)
    session.commit()
    logger.info("Member %s removed from trip %s", member_id, trip.id)
