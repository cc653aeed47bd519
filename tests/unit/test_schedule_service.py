"""Unit tests for due schedule generation."""

from datetime import date
from decimal import Decimal

import pytest

from dues.models.member import Member
from dues.services.schedule_service import DueScheduleGenerator


def _member(**kwargs) -> Member:
    values = {
        "name": "Anna Berg",
        "status": "ACTIVE",
        "join_date": date(2024, 3, 15),
        "contribution_amount": Decimal("10.00"),
        "contribution_interval": "MONTHLY",
    }
    values.update(kwargs)
    return Member(**values)


class TestGenerate:
    """Test due period generation."""

    @pytest.fixture
    def schedule(self):
        return DueScheduleGenerator()

    def test_monthly_from_join_to_as_of(self, schedule):
        """Joined mid-March, as of June 1st: March through June are due."""
        periods = schedule.generate(_member(), date(2024, 6, 1))
        assert [str(p.period_key) for p in periods] == ["2024-03", "2024-04", "2024-05", "2024-06"]
        assert all(p.amount == Decimal("10.00") for p in periods)

    def test_due_periods_carry_windows(self, schedule):
        periods = schedule.generate(_member(), date(2024, 4, 10))
        assert periods[0].window_start == date(2024, 3, 1)
        assert periods[0].window_end == date(2024, 3, 31)
        assert periods[1].window_end == date(2024, 4, 30)

    def test_quarterly_schedule(self, schedule):
        member = _member(contribution_interval="QUARTERLY", join_date=date(2023, 11, 2))
        periods = schedule.generate(member, date(2024, 5, 20))
        assert [str(p.period_key) for p in periods] == ["2023-Q4", "2024-Q1", "2024-Q2"]

    def test_yearly_schedule(self, schedule):
        member = _member(contribution_interval="YEARLY", join_date=date(2022, 7, 1))
        periods = schedule.generate(member, date(2024, 1, 1))
        assert [str(p.period_key) for p in periods] == ["2022", "2023", "2024"]

    def test_no_billing_yields_empty(self, schedule):
        """No amount or no interval means nothing is due, not an error."""
        assert schedule.generate(_member(contribution_amount=None), date(2024, 6, 1)) == []
        assert schedule.generate(_member(contribution_interval=None), date(2024, 6, 1)) == []

    def test_as_of_before_join_yields_empty(self, schedule):
        assert schedule.generate(_member(), date(2024, 2, 28)) == []

    def test_next_due_date_overrides_join_date(self, schedule):
        """A later next_due_date moves the first due period forward."""
        member = _member(next_due_date=date(2024, 5, 1))
        periods = schedule.generate(member, date(2024, 6, 1))
        assert [str(p.period_key) for p in periods] == ["2024-05", "2024-06"]

    def test_earlier_next_due_date_does_not_backdate(self, schedule):
        member = _member(next_due_date=date(2023, 12, 1))
        periods = schedule.generate(member, date(2024, 4, 1))
        assert str(periods[0].period_key) == "2024-03"

    def test_leave_date_caps_schedule(self, schedule):
        """Periods starting after the leave date are not due."""
        member = _member(leave_date=date(2024, 4, 30))
        periods = schedule.generate(member, date(2024, 8, 1))
        assert [str(p.period_key) for p in periods] == ["2024-03", "2024-04"]

    def test_leave_date_mid_period_keeps_period(self, schedule):
        member = _member(leave_date=date(2024, 4, 2))
        periods = schedule.generate(member, date(2024, 8, 1))
        assert str(periods[-1].period_key) == "2024-04"

    def test_left_before_first_due(self, schedule):
        member = _member(next_due_date=date(2024, 6, 1), leave_date=date(2024, 5, 15))
        assert schedule.generate(member, date(2024, 8, 1)) == []

    def test_no_anchor_bills_from_as_of(self, schedule):
        member = _member(join_date=None)
        periods = schedule.generate(member, date(2024, 6, 10))
        assert [str(p.period_key) for p in periods] == ["2024-06"]

    def test_generate_is_deterministic(self, schedule):
        member = _member()
        assert schedule.generate(member, date(2024, 6, 1)) == schedule.generate(member, date(2024, 6, 1))


class TestBillingSpan:
    """Test due periods inside an arbitrary date range."""

    @pytest.fixture
    def schedule(self):
        return DueScheduleGenerator()

    def test_span_clamped_to_first_due(self, schedule):
        periods = schedule.billing_span(_member(), date(2024, 1, 1), date(2024, 4, 30))
        assert [str(p.period_key) for p in periods] == ["2024-03", "2024-04"]

    def test_span_clamped_to_leave_date(self, schedule):
        member = _member(leave_date=date(2024, 5, 10))
        periods = schedule.billing_span(member, date(2024, 4, 1), date(2024, 8, 31))
        assert [str(p.period_key) for p in periods] == ["2024-04", "2024-05"]

    def test_span_inverted_range(self, schedule):
        assert schedule.billing_span(_member(), date(2024, 5, 1), date(2024, 4, 1)) == []

    def test_first_due_and_last_billable(self, schedule):
        member = _member(leave_date=date(2025, 1, 3))
        assert str(schedule.first_due_period(member)) == "2024-03"
        assert str(schedule.last_billable_period(member)) == "2025-01"
        assert schedule.last_billable_period(_member()) is None
        assert schedule.first_due_period(_member(contribution_amount=None)) is None
