"""
Tests for the derived values the templates render: countdown, progress,
trip card totals and avatar helpers.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from triptrack import components
from triptrack.models.common import utc_now


class TestCountdown:

    def test_upcoming(self):
        cd = components.countdown(date(2030, 1, 3), now=datetime(2030, 1, 1, 18, 0))
        assert cd.status == "upcoming"
        assert cd.label == "Days Until Trip"
        assert cd.text == "1d 6h"

    def test_trip_day(self):
        cd = components.countdown(date(2030, 1, 1), now=datetime(2030, 1, 1, 9, 30))
        assert cd.status == "today"
        assert cd.label == "Trip Day!"
        assert cd.text == "Today!"

    def test_past(self):
        cd = components.countdown(date(2025, 10, 1), now=datetime(2026, 1, 1))
        assert cd.status == "past"
        assert cd.label == "Trip Completed"
        assert cd.text == "Completed"


class TestProgress:

    def test_percent_unclamped(self):
        assert components.progress_percent(Decimal("550"), Decimal("1000")) == Decimal("55")
        assert components.progress_percent(Decimal("1500"), Decimal("1000")) == Decimal("150")

    def test_zero_target(self):
        assert components.progress_percent(Decimal("10"), Decimal("0")) == 0

    @pytest.mark.parametrize("pct,width", [(-5, 0), (42, 42), (150, 100)])
    def test_bar_width_clamped(self, pct, width):
        assert components.bar_width(pct) == width

    @pytest.mark.parametrize("pct,tier", [(0, "low"), (49.9, "low"), (50, "mid"), (75, "high"), (100, "complete")])
    def test_tiers(self, pct, tier):
        assert components.progress_tier(Decimal(str(pct))) == tier

    def test_goal_reached(self):
        assert components.has_reached_goal(Decimal("1000"), Decimal("1000"))
        assert not components.has_reached_goal(Decimal("999.99"), Decimal("1000"))


def test_trip_summary():
    trip = SimpleNamespace(
        target_amount=Decimal("1000"),
        members=[SimpleNamespace(current_savings=Decimal("1200")),
                 SimpleNamespace(current_savings=Decimal("300"))],
    )
    summary = components.trip_summary(trip)
    assert summary.total_savings == Decimal("1500")
    assert summary.total_target == Decimal("2000")
    assert summary.overall_progress == Decimal("75")
    assert summary.completed_members == 1
    assert summary.member_count == 2


def test_trip_summary_without_members():
    summary = components.trip_summary(SimpleNamespace(target_amount=Decimal("1000"), members=[]))
    assert summary.overall_progress == 0
    assert summary.member_count == 0


def test_formatting():
    assert components.money(Decimal("1200")) == "$1200.00"
    assert components.money(Decimal("1234.5"), 0) == "$1234"
    assert components.percent(Decimal("55")) == "55.0%"
    assert components.initials("kenji sato") == "KS"
    assert components.initials("Cher") == "C"
    assert components.avatar_color(SimpleNamespace(avatar_color=None)) == "#0ea5e9"


def test_timestamps_carry_utc():
    assert utc_now().tzinfo is timezone.utc
