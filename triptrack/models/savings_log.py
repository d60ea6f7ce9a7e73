from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

from triptrack.models.common import utc_now


class SavingsLog(SQLModel, table=True):
    """Append-only audit trail of savings changes."""

    __tablename__ = "savings_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    trip_id: int = Field(foreign_key="trip.id", ondelete="CASCADE", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    old_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    new_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    admin_id: Optional[int] = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    created_at: datetime = Field(default_factory=utc_now, index=True)

    @property
    def change(self) -> Decimal:
        return (self.new_amount or Decimal("0")) - (self.old_amount or Decimal("0"))
