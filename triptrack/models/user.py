from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from triptrack.config import DEFAULT_AVATAR_COLOR
from triptrack.models.common import utc_now


class UserRole(str, Enum):
    admin = "admin"
    joiner = "joiner"


class Account(SQLModel, table=True):
    """Sign-in credentials. Profiles live in ``User``."""

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: Optional[str] = None
    google_id: Optional[str] = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=utc_now)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    auth_account_id: Optional[int] = Field(default=None, foreign_key="account.id", unique=True)
    name: str
    email: Optional[str] = Field(default=None, unique=True)
    role: UserRole = Field(default=UserRole.joiner)
    avatar_color: str = Field(default=DEFAULT_AVATAR_COLOR)
    photo_url: Optional[str] = None
    owner_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    is_owner: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.is_owner or self.role == UserRole.admin

    @property
    def scope_id(self) -> Optional[int]:
        """owner_id shared by every profile this user can see."""
        return self.owner_id or self.id
