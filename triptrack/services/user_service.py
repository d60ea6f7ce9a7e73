# triptrack/services/user_service.py
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from triptrack.config import DEFAULT_AVATAR_COLOR, Settings
from triptrack.errors import FormError, NotFound, PermissionDenied, StorageError
from triptrack.models import User, UserRole
from triptrack.models.common import utc_now
from triptrack.services.storage import ObjectStorage, delete_user_photo, upload_user_photo, validate_photo

logger = logging.getLogger("triptrack.users")

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


@dataclass
class UserForm:
    name: str
    email: Optional[str]
    role: UserRole
    avatar_color: str

    @classmethod
    def parse(cls, name, email=None, role=None, avatar_color=None) -> "UserForm":
        name = (name or "").strip()
        if not name:
            raise FormError("Please enter a name")
        email = (email or "").strip().lower() or None
        if email and "@" not in email:
            raise FormError("Please enter a valid email address")
        try:
            parsed_role = UserRole(role or UserRole.joiner.value)
        except ValueError:
            raise FormError("Please choose a valid role")
        color = (avatar_color or "").strip() or DEFAULT_AVATAR_COLOR
        if not HEX_COLOR.match(color):
            raise FormError("Avatar color must be a hex value like #0ea5e9")
        return cls(name=name, email=email, role=parsed_role, avatar_color=color.lower())


@dataclass
class PendingPhoto:
    """An uploaded file held in memory until the profile it belongs to exists."""

    filename: Optional[str]
    content_type: Optional[str]
    data: bytes


def list_users(session: Session, actor: User) -> List[User]:
    stmt = select(User).where(User.owner_id == actor.scope_id).order_by(User.created_at.desc(), User.id.desc())
    return list(session.exec(stmt).all())


def get_scoped_user(session: Session, actor: User, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    if user.owner_id != actor.scope_id:
        raise PermissionDenied("this user is managed by another admin")
    return user


def create_user(session: Session, actor: User, form: UserForm, photo: Optional[PendingPhoto] = None,
                storage: Optional[ObjectStorage] = None, settings: Optional[Settings] = None) -> Tuple[User, Optional[str]]:
    """Insert the profile, then upload its photo and patch photo_url.

    The photo is validated before anything is written. Returns the user and a
    warning when the upload itself failed; the profile is kept either way.
    """
    if photo is not None:
        validate_photo(photo.content_type, len(photo.data), settings.max_photo_bytes)
    user = User(
        name=form.name,
        email=form.email,
        role=form.role,
        avatar_color=form.avatar_color,
        owner_id=actor.scope_id,
    )
    session.add(user); session.commit(); session.refresh(user)
    logger.info("User %s created by %s", user.id, actor.id)

    if photo is None:
        return user, None
    try:
        url = upload_user_photo(storage, settings, user.id, photo.filename, photo.content_type, photo.data)
    except StorageError as e:
        return user, f"User created, but the photo was not saved: {e}"
    user.photo_url = url
    user.updated_at = utc_now()
    session.add(user); session.commit(); session.refresh(user)
    return user, None


def update_user(session: Session, actor: User, user_id: int, form: UserForm, photo: Optional[PendingPhoto] = None,
                remove_photo: bool = False, storage: Optional[ObjectStorage] = None,
                settings: Optional[Settings] = None) -> User:
    """Update the profile. A replaced or removed photo object is deleted only
    once the row no longer points at it."""
    user = get_scoped_user(session, actor, user_id)
    old_photo_url = user.photo_url
    new_photo_url = old_photo_url
    if photo is not None:
        new_photo_url = upload_user_photo(storage, settings, user.id, photo.filename, photo.content_type, photo.data)
    elif remove_photo:
        new_photo_url = None

    user.name = form.name
    user.email = form.email
    user.role = form.role
    user.avatar_color = form.avatar_color
    user.photo_url = new_photo_url
    user.updated_at = utc_now()
    session.add(user)
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        if photo is not None:
            delete_user_photo(storage, settings, new_photo_url)
        raise
    session.refresh(user)
    if old_photo_url and old_photo_url != new_photo_url:
        delete_user_photo(storage, settings, old_photo_url)
    return user


def delete_user(session: Session, actor: User, user_id: int, storage: Optional[ObjectStorage] = None,
                settings: Optional[Settings] = None):
    user = get_scoped_user(session, actor, user_id)
    if user.id == actor.id or user.is_owner:
        raise FormError("You cannot delete the account owner")
    photo_url = user.photo_url
    session.delete(user)
    session.commit()
    if photo_url and storage is not None:
        delete_user_photo(storage, settings, photo_url)
    logger.info("User %s deleted by %s", user_id, actor.id)
