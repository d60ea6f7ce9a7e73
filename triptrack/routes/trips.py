import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response
from sqlmodel import Session

from triptrack.auth import LOGIN_URL, current_profile, require_profile
from triptrack.components import trip_summary
from triptrack.db import get_session
from triptrack.errors import NotFound, PermissionDenied
from triptrack.models import Trip, User
from triptrack.services import savings_service, share_service, trip_service
from triptrack.web import ACTION_ERRORS, fail, flash, redirect, render

router = APIRouter(prefix="/trips")
logger = logging.getLogger("triptrack.trips")


def _resolve_trip(session: Session, trip_id: int, token: Optional[str], viewer: Optional[User]):
    """Return (trip, is_admin) for a share-token holder or the owning admin.

    A token always wins: admin controls stay hidden for shared views even when
    the viewer is signed in.
    """
    if token:
        trip = share_service.trip_for_token(session, trip_id, token)
        return trip, False
    if viewer is None:
        return None, False
    trip = trip_service.get_owned_trip(session, viewer, trip_id)
    return trip, viewer.is_admin


@router.get("/{trip_id}")
def trip_detail(request: Request, trip_id: int, token: Optional[str] = None, add: Optional[int] = None,
                viewer: Optional[User] = Depends(current_profile), session: Session = Depends(get_session)):
    try:
        trip, is_admin = _resolve_trip(session, trip_id, token, viewer)
    except (NotFound, PermissionDenied) as e:
        logger.info("Trip %s not available: %s", trip_id, e)
        flash(request, "Trip not found")
        return redirect("/dashboard")
    if trip is None:
        return redirect(LOGIN_URL)

    history = savings_service.savings_history(session, trip) if is_admin else []
    return render(
        request, "trip_detail.html",
        current_user=None if token else viewer,
        trip=trip,
        summary=trip_summary(trip),
        is_admin=is_admin,
        history=history,
        editing_member=add if is_admin else None,
        token=token,
    )


@router.post("/{trip_id}/members/{member_id}/savings")
def add_savings(request: Request, trip_id: int, member_id: int, amount: str = Form(""),
                current_user: User = Depends(require_profile), session: Session = Depends(get_session)):
    back = f"/trips/{trip_id}"
    try:
        if not current_user.is_admin:
            raise PermissionDenied("only admins can add savings")
        change = savings_service.add_savings(session, current_user, trip_id, member_id, amount)
    except ACTION_ERRORS as e:
        return fail(request, e, back, "add savings")
    logger.info("Member %s savings %s -> %s", member_id, change.old_amount, change.new_amount)
    return redirect(back)


@router.get("/{trip_id}/photos")
def trip_photos(request: Request, trip_id: int, token: Optional[str] = None,
                viewer: Optional[User] = Depends(current_profile), session: Session = Depends(get_session)):
    try:
        trip, _ = _resolve_trip(session, trip_id, token, viewer)
    except (NotFound, PermissionDenied) as e:
        logger.info("Trip %s photos not available: %s", trip_id, e)
        flash(request, "Trip not found")
        return redirect("/dashboard")
    if trip is None:
        return redirect(LOGIN_URL)
    return render(request, "trip_photos.html", current_user=None if token else viewer,
                  trip=trip, photos=trip.photos or [], token=token)


@router.get("/{trip_id}/export.csv")
def export_csv(trip_id: int, current_user: User = Depends(require_profile),
               session: Session = Depends(get_session)):
    if not current_user.is_admin:
        raise PermissionDenied("only admins can export savings")
    trip: Trip = trip_service.get_owned_trip(session, current_user, trip_id)
    filename = savings_service.export_filename(trip)
    return Response(
        content=savings_service.export_csv(trip),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
