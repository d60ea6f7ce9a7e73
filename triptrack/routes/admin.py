import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlmodel import Session

from triptrack.auth import require_profile
from triptrack.db import get_session
from triptrack.errors import FormError, PermissionDenied
from triptrack.models import User, UserRole
from triptrack.services import membership_service, share_service, trip_service, user_service
from triptrack.services.storage import ObjectStorage
from triptrack.web import ACTION_ERRORS, fail, flash, redirect, render

router = APIRouter(prefix="/admin")
logger = logging.getLogger("triptrack.admin")

TRIPS_TAB = "/admin?tab=trips"
USERS_TAB = "/admin?tab=users"


def _require_admin(current_user: User = Depends(require_profile)) -> User:
    if not current_user.is_admin:
        raise PermissionDenied("admin access required")
    return current_user


async def _pending_photo(upload: Optional[UploadFile], max_bytes: int) -> Optional[user_service.PendingPhoto]:
    """Read at most one byte past the limit; validation rejects anything longer."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read(max_bytes + 1)
    if not data:
        return None
    return user_service.PendingPhoto(filename=upload.filename, content_type=upload.content_type, data=data)


def _storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def _maybe_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


@router.get("")
def admin_page(request: Request, tab: str = "trips", edit_trip: Optional[str] = None, edit_user: Optional[str] = None,
               manage: Optional[str] = None, shared: Optional[str] = None, new: Optional[str] = None,
               current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    trips = trip_service.list_trips(session, current_user)
    users = user_service.list_users(session, current_user)
    by_id = {t.id: t for t in trips}

    editing_trip = by_id.get(_maybe_int(edit_trip))
    editing_user = next((u for u in users if u.id == _maybe_int(edit_user)), None)
    manage_trip = by_id.get(_maybe_int(manage))
    candidates = membership_service.available_users(session, current_user, manage_trip) if manage_trip else []

    share = None
    shared_trip = by_id.get(_maybe_int(shared))
    if shared_trip:
        link = share_service.find_share_link(session, shared_trip.id)
        if link:
            share = share_service.share_urls(request.app.state.settings.base_url, shared_trip.id, link.share_token)

    return render(
        request, "admin.html",
        current_user=current_user,
        tab="users" if tab == "users" else "trips",
        trips=trips,
        users=users,
        roles=[r.value for r in UserRole],
        editing_trip=editing_trip,
        editing_user=editing_user,
        show_trip_form=bool(editing_trip) or new == "trip",
        show_user_form=bool(editing_user) or new == "user",
        manage_trip=manage_trip,
        candidates=candidates,
        shared_trip=shared_trip,
        share=share,
        max_photo_bytes=request.app.state.settings.max_photo_bytes,
    )


@router.post("/trips")
def create_trip(
    request: Request,
    name: str = Form(""),
    target_date: str = Form(""),
    target_amount: str = Form(""),
    description: str = Form(""),
    location: str = Form(""),
    place_description: str = Form(""),
    photos: List[str] = Form([]),
    current_user: User = Depends(_require_admin),
    session: Session = Depends(get_session),
):
    try:
        form = trip_service.TripForm.parse(name, target_date, target_amount, description, location,
                                           place_description, photos)
        trip_service.create_trip(session, current_user, form)
    except ACTION_ERRORS as e:
        return fail(request, e, TRIPS_TAB + "&new=trip", "create trip")
    flash(request, "Trip created", "success")
    return redirect(TRIPS_TAB)


@router.post("/trips/{trip_id}")
def update_trip(
    request: Request,
    trip_id: int,
    name: str = Form(""),
    target_date: str = Form(""),
    target_amount: str = Form(""),
    description: str = Form(""),
    location: str = Form(""),
    place_description: str = Form(""),
    photos: List[str] = Form([]),
    current_user: User = Depends(_require_admin),
    session: Session = Depends(get_session),
):
    try:
        form = trip_service.TripForm.parse(name, target_date, target_amount, description, location,
                                           place_description, photos)
        trip_service.update_trip(session, current_user, trip_id, form)
    except ACTION_ERRORS as e:
        return fail(request, e, f"{TRIPS_TAB}&edit_trip={trip_id}", "update trip")
    flash(request, "Trip updated", "success")
    return redirect(TRIPS_TAB)


@router.post("/trips/{trip_id}/delete")
def delete_trip(request: Request, trip_id: int, confirm: str = Form(""),
                current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    try:
        if confirm != "yes":
            raise FormError("Please confirm that you want to delete this trip")
        trip_service.delete_trip(session, current_user, trip_id)
    except ACTION_ERRORS as e:
        return fail(request, e, TRIPS_TAB, "delete trip")
    flash(request, "Trip deleted", "success")
    return redirect(TRIPS_TAB)


@router.post("/trips/{trip_id}/members")
def add_member(request: Request, trip_id: int, user_id: int = Form(...),
               current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    back = f"{TRIPS_TAB}&manage={trip_id}"
    try:
        membership_service.add_member(session, current_user, trip_id, user_id)
    except ACTION_ERRORS as e:
        return fail(request, e, back, "add member")
    return redirect(back)


@router.post("/trips/{trip_id}/members/{member_id}/delete")
def remove_member(request: Request, trip_id: int, member_id: int,
                  current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    back = f"{TRIPS_TAB}&manage={trip_id}"
    try:
        membership_service.remove_member(session, current_user, trip_id, member_id)
    except ACTION_ERRORS as e:
        return fail(request, e, back, "remove member")
    return redirect(back)


@router.post("/trips/{trip_id}/share")
def share_trip(request: Request, trip_id: int,
               current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    try:
        share_service.get_or_create_share_link(session, current_user, trip_id)
    except ACTION_ERRORS as e:
        return fail(request, e, TRIPS_TAB, "create share link")
    return redirect(f"{TRIPS_TAB}&shared={trip_id}")


@router.post("/users")
async def create_user(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    role: str = Form(UserRole.joiner.value),
    avatar_color: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(_require_admin),
    session: Session = Depends(get_session),
):
    try:
        form = user_service.UserForm.parse(name, email, role, avatar_color)
        pending = await _pending_photo(photo, request.app.state.settings.max_photo_bytes)
        _, warning = user_service.create_user(session, current_user, form, pending,
                                              storage=_storage(request), settings=request.app.state.settings)
    except ACTION_ERRORS as e:
        return fail(request, e, USERS_TAB + "&new=user", "create user")
    if warning:
        flash(request, warning)
    else:
        flash(request, "User created", "success")
    return redirect(USERS_TAB)


@router.post("/users/{user_id}")
async def update_user(
    request: Request,
    user_id: int,
    name: str = Form(""),
    email: str = Form(""),
    role: str = Form(UserRole.joiner.value),
    avatar_color: str = Form(""),
    remove_photo: bool = Form(False),
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(_require_admin),
    session: Session = Depends(get_session),
):
    try:
        form = user_service.UserForm.parse(name, email, role, avatar_color)
        pending = await _pending_photo(photo, request.app.state.settings.max_photo_bytes)
        user_service.update_user(session, current_user, user_id, form, pending, remove_photo=remove_photo,
                                 storage=_storage(request), settings=request.app.state.settings)
    except ACTION_ERRORS as e:
        return fail(request, e, f"{USERS_TAB}&edit_user={user_id}", "update user")
    flash(request, "User updated", "success")
    return redirect(USERS_TAB)


@router.post("/users/{user_id}/delete")
def delete_user(request: Request, user_id: int, confirm: str = Form(""),
                current_user: User = Depends(_require_admin), session: Session = Depends(get_session)):
    try:
        if confirm != "yes":
            raise FormError("Please confirm that you want to delete this user")
        user_service.delete_user(session, current_user, user_id,
                                 storage=_storage(request), settings=request.app.state.settings)
    except ACTION_ERRORS as e:
        return fail(request, e, USERS_TAB, "delete user")
    flash(request, "User deleted", "success")
    return redirect(USERS_TAB)
