"""
Savings updates and history.

Adding to a member's savings reads the stored amount, writes ``old + delta``
with a compare-and-swap update so a concurrent write is never lost, and then
appends a ``SavingsLog`` row. The audit insert is best effort: the amount
update stands even when logging fails.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from triptrack.components import progress_percent
from triptrack.errors import ConcurrentUpdate, FormError, NotFound, PermissionDenied
from triptrack.models import SavingsLog, Trip, TripMember, User
from triptrack.models.common import utc_now
from triptrack.services.trip_service import fits_column, parse_positive_amount

logger = logging.getLogger("triptrack.savings")

CAS_ATTEMPTS = 3
HISTORY_LIMIT = 20
CSV_HEADERS = ["User Name", "Target Amount", "Current Savings", "Completion %", "Last Updated"]


@dataclass
class SavingsChange:
    trip_id: int
    user_id: int
    member_id: int
    old_amount: Decimal
    new_amount: Decimal
    logged: bool = True


@dataclass
class HistoryRow:
    log: SavingsLog
    traveler_name: str
    avatar_color: Optional[str]

    @property
    def change(self) -> Decimal:
        return self.log.change


def parse_increment(raw) -> Decimal:
    return parse_positive_amount(raw, "Please enter a valid amount to add (must be greater than 0)")


def add_savings(session: Session, actor: User, trip_id: int, member_id: int, amount) -> SavingsChange:
    delta = parse_increment(amount)

    row = session.exec(
        select(TripMember.trip_id, TripMember.user_id).where(TripMember.id == member_id)
    ).first()
    if row is None or row.trip_id != trip_id:
        raise NotFound("Member not found")
    trip = session.get(Trip, trip_id)
    if trip is None or trip.created_by != actor.id:
        raise PermissionDenied("only the trip's admin can add savings")

    for attempt in range(1, CAS_ATTEMPTS + 1):
        old_amount = session.exec(
            select(TripMember.current_savings).where(TripMember.id == member_id)
        ).first()
        if old_amount is None:
            raise NotFound("Member not found")
        new_amount = old_amount + delta
        if not fits_column(new_amount):
            raise FormError("This amount would exceed the largest balance that can be stored")
        result = session.connection().execute(
            update(TripMember)
            .where(TripMember.id == member_id)
            .where(TripMember.current_savings == old_amount)
            .values(current_savings=new_amount, updated_at=utc_now())
        )
        if result.rowcount == 1:
            session.commit()
            break
        session.rollback()
        logger.info("Savings for member %s changed underneath us (attempt %d)", member_id, attempt)
    else:
        raise ConcurrentUpdate("Savings were changed by someone else. Please try again.")

    change = SavingsChange(
        trip_id=trip_id, user_id=row.user_id, member_id=member_id,
        old_amount=old_amount, new_amount=new_amount,
    )
    change.logged = _append_log(session, change, actor)
    session.expire_all()
    return change


def _append_log(session: Session, change: SavingsChange, actor: User) -> bool:
    try:
        entry = SavingsLog(
            trip_id=change.trip_id,
            user_id=change.user_id,
            old_amount=change.old_amount,
            new_amount=change.new_amount,
            admin_id=actor.id,
        )
        session.add(entry)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error logging savings change for member %s", change.member_id)
        return False
    return True


def savings_history(session: Session, trip: Trip, limit: int = HISTORY_LIMIT) -> List[HistoryRow]:
    """Newest first. Entries for removed members resolve to "Unknown"."""
    logs = session.exec(
        select(SavingsLog)
        .where(SavingsLog.trip_id == trip.id)
        .order_by(SavingsLog.created_at.desc(), SavingsLog.id.desc())
        .limit(limit)
    ).all()
    by_user = {m.user_id: m for m in trip.members}
    rows = []
    for log in logs:
        member = by_user.get(log.user_id)
        if member and member.user:
            rows.append(HistoryRow(log=log, traveler_name=member.user.name, avatar_color=member.user.avatar_color))
        else:
            rows.append(HistoryRow(log=log, traveler_name="Unknown", avatar_color=None))
    return rows


def export_filename(trip: Trip) -> str:
    return re.sub(r"\s+", "_", trip.name) + "_savings.csv"


def export_csv(trip: Trip) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for member in trip.members:
        progress = progress_percent(member.current_savings, trip.target_amount)
        writer.writerow([
            member.user.name if member.user else "Unknown",
            f"{trip.target_amount:.2f}",
            f"{member.current_savings:.2f}",
            f"{progress:.2f}%",
            member.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        ])
    return buf.getvalue()
