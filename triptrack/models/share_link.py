from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from triptrack.models.common import utc_now


class TripShareLink(SQLModel, table=True):
    __tablename__ = "trip_share_link"

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trip.id", ondelete="CASCADE", index=True)
    share_token: str = Field(index=True, unique=True)
    created_by: Optional[int] = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
