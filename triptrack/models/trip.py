from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from triptrack.models.common import utc_now
from triptrack.models.user import User


class Trip(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    target_date: date
    target_amount: Decimal = Field(max_digits=12, decimal_places=2)
    created_by: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    place_description: Optional[str] = None
    location: Optional[str] = None
    photos: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    members: List["TripMember"] = Relationship(
        back_populates="trip",
        cascade_delete=True,
        sa_relationship_kwargs={"order_by": "TripMember.id"},
    )


class TripMember(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_trip_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trip.id", ondelete="CASCADE", index=True)
    user_id: int = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    current_savings: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    trip: Optional[Trip] = Relationship(back_populates="members")
    user: Optional[User] = Relationship()
