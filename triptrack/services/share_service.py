# triptrack/services/share_service.py
import logging
import secrets
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session, select

from triptrack.errors import NotFound
from triptrack.models import Trip, TripShareLink, User
from triptrack.services.trip_service import get_owned_trip, load_trip

logger = logging.getLogger("triptrack.share")


@dataclass
class ShareUrls:
    token: str
    trip_url: str
    photos_url: str


def new_share_token() -> str:
    return uuid.uuid4().hex + uuid.uuid4().hex


def share_urls(base_url: str, trip_id: int, token: str) -> ShareUrls:
    base_url = base_url.rstrip("/")
    return ShareUrls(
        token=token,
        trip_url=f"{base_url}/trips/{trip_id}?token={token}",
        photos_url=f"{base_url}/trips/{trip_id}/photos?token={token}",
    )


def find_share_link(session: Session, trip_id: int) -> Optional[TripShareLink]:
    return session.exec(
        select(TripShareLink).where(TripShareLink.trip_id == trip_id).order_by(TripShareLink.id).limit(1)
    ).first()


def get_or_create_share_link(session: Session, actor: User, trip_id: int) -> TripShareLink:
    """Reuse the trip's existing token, minting one only when none exists."""
    trip = get_owned_trip(session, actor, trip_id)
    link = find_share_link(session, trip.id)
    if link:
        return link
    link = TripShareLink(trip_id=trip.id, share_token=new_share_token(), created_by=actor.id)
    session.add(link); session.commit(); session.refresh(link)
    logger.info("Share link issued for trip %s by %s", trip.id, actor.id)
    return link


def trip_for_token(session: Session, trip_id: int, token: Optional[str]) -> Trip:
    """Load a trip for an unauthenticated viewer holding a share token."""
    if not token:
        raise NotFound("Missing share token")
    link = session.exec(
        select(TripShareLink).where(TripShareLink.trip_id == trip_id).where(TripShareLink.share_token == token)
    ).first()
    if not link or not secrets.compare_digest(link.share_token, token):
        raise NotFound("Invalid share link")
    return load_trip(session, trip_id)
