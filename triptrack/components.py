"""
Derived state for the presentation layer: countdowns, progress, trip card
totals, avatar initials. Registered as Jinja2 globals in ``main.py``.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Sequence

from triptrack.config import DEFAULT_AVATAR_COLOR

COUNTDOWN_REFRESH_MS = 60_000


@dataclass
class Countdown:
    status: str  # 'upcoming' | 'today' | 'past'
    days: int = 0
    hours: int = 0

    @property
    def label(self) -> str:
        if self.status == "past":
            return "Trip Completed"
        if self.status == "today":
            return "Trip Day!"
        return "Days Until Trip"

    @property
    def text(self) -> str:
        if self.status == "past":
            return "Completed"
        if self.status == "today":
            return f"{self.hours}h remaining" if self.hours > 0 else "Today!"
        return f"{self.days}d {self.hours}h"


def countdown(target_date: date, now: Optional[datetime] = None) -> Countdown:
    now = now or datetime.now()
    target = datetime.combine(target_date, time.min)
    if target.date() == now.date():
        hours = int((target - now).total_seconds() // 3600)
        return Countdown("today", 0, max(0, hours))
    if target < now:
        return Countdown("past")
    delta = target - now
    return Countdown("upcoming", delta.days, delta.seconds // 3600)


def progress_percent(current, target) -> Decimal:
    """Unclamped percentage; over-saving shows above 100."""
    current = Decimal(current or 0)
    target = Decimal(target or 0)
    if target <= 0:
        return Decimal("0")
    return current / target * 100


def bar_width(percent) -> Decimal:
    return min(max(Decimal(percent), Decimal("0")), Decimal("100"))


def progress_tier(percent) -> str:
    percent = Decimal(percent)
    if percent >= 100:
        return "complete"
    if percent >= 75:
        return "high"
    if percent >= 50:
        return "mid"
    return "low"


def has_reached_goal(current, target) -> bool:
    return Decimal(current or 0) >= Decimal(target or 0)


@dataclass
class TripSummary:
    total_savings: Decimal
    total_target: Decimal
    overall_progress: Decimal
    completed_members: int
    member_count: int


def trip_summary(trip) -> TripSummary:
    members: Sequence = trip.members or []
    total_savings = sum((Decimal(m.current_savings) for m in members), Decimal("0"))
    total_target = Decimal(trip.target_amount) * len(members)
    overall = total_savings / total_target * 100 if total_target > 0 else Decimal("0")
    completed = sum(1 for m in members if has_reached_goal(m.current_savings, trip.target_amount))
    return TripSummary(total_savings, total_target, overall, completed, len(members))


def initials(name: Optional[str]) -> str:
    return "".join(part[0] for part in (name or "").split(" ") if part).upper()[:2]


def avatar_color(user) -> str:
    return getattr(user, "avatar_color", None) or DEFAULT_AVATAR_COLOR


def money(value, places: int = 2) -> str:
    return f"${Decimal(value or 0):.{places}f}"


def percent(value, places: int = 1) -> str:
    return f"{Decimal(value or 0):.{places}f}%"
