"""Member dues status and timeline view models."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from dues.models.member import ContributionInterval, Member
from dues.services import period_calendar
from dues.services.ledger_service import PaymentLedgerService
from dues.services.schedule_service import DueScheduleGenerator

logger = logging.getLogger(__name__)


class DuesState(str, Enum):
    """Overall dues state of a member."""

    OK = "OK"
    OVERDUE = "OVERDUE"
    NONE = "NONE"
    """No billing configured: neither OK nor OVERDUE."""


class TimelineLabel(str, Enum):
    """Display label of a timeline period."""

    PAID = "paid"
    OVERDUE = "overdue"
    CURRENT = "current"
    UPCOMING = "upcoming"
    INACTIVE = "inactive"
    """After the member's leave date."""


@dataclass(frozen=True)
class StatusSummary:
    """Per-member dues status as of a date."""

    state: DuesState
    overdue_count: int
    join_date: date | None
    interval: ContributionInterval | None
    amount: Decimal | None = None
    leave_date: date | None = None
    last_paid_period: str | None = None
    last_paid_date: datetime | None = None
    initial_due_date: date | None = None
    first_overdue_period: str | None = None


@dataclass(frozen=True)
class TimelineEntry:
    """One period of the timeline view."""

    period_key: str
    label: TimelineLabel


class StatusAggregator:
    """Combine the due schedule with ledger state.

    Pure projections: nothing here writes to the ledger.
    """

    def __init__(
        self,
        ledger: PaymentLedgerService,
        schedule: DueScheduleGenerator | None = None,
        default_past_window: int = 5,
        default_past_window_quarterly: int = 2,
        default_future_window: int = 3,
    ):
        """Initialize aggregator.

        Args:
            ledger: Payment ledger to read paid state from
            schedule: Due schedule generator (default: new instance)
            default_past_window: Past periods shown when not requested
            default_past_window_quarterly: Past periods for quarterly billing
            default_future_window: Future periods shown when not requested
        """
        self.ledger = ledger
        self.schedule = schedule or DueScheduleGenerator()
        self.default_past_window = default_past_window
        self.default_past_window_quarterly = default_past_window_quarterly
        self.default_future_window = default_future_window

    def status(self, member: Member, as_of: date) -> StatusSummary:
        """Summarize a member's dues state as of a date.

        OVERDUE iff at least one due period up to and including the current
        one is unpaid. The last paid period is chosen by period order, so a
        late back-payment for an old period does not look more recent than
        later periods.

        Args:
            member: Member to summarize
            as_of: Reference date

        Returns:
            StatusSummary; state NONE when no billing is configured
        """
        if not member.has_billing:
            return StatusSummary(
                state=DuesState.NONE,
                overdue_count=0,
                join_date=member.join_date,
                interval=member.interval,
                leave_date=member.leave_date,
            )

        due_periods = self.schedule.generate(member, as_of)
        paid_keys = self.ledger.paid_period_keys(member.id)
        unpaid = [p for p in due_periods if str(p.period_key) not in paid_keys]

        last_key = None
        last_record = None
        for record in self.ledger.records_for(member.id):
            if record.interval != member.interval.value:
                continue
            key = period_calendar.parse(record.period_key, member.interval)
            if last_key is None or period_calendar.compare(key, last_key) > 0:
                last_key, last_record = key, record

        first_due = self.schedule.first_due_period(member, as_of)
        initial_due_date = period_calendar.range_of(first_due).start if first_due else None

        summary = StatusSummary(
            state=DuesState.OVERDUE if unpaid else DuesState.OK,
            overdue_count=len(unpaid),
            join_date=member.join_date,
            interval=member.interval,
            amount=member.contribution_amount,
            leave_date=member.leave_date,
            last_paid_period=str(last_key) if last_key else None,
            last_paid_date=last_record.date_paid if last_record else None,
            initial_due_date=initial_due_date,
            first_overdue_period=str(unpaid[0].period_key) if unpaid else None,
        )
        logger.debug(
            "Status member_id=%s as_of=%s: %s overdue=%d",
            member.id,
            as_of,
            summary.state.value,
            summary.overdue_count,
        )
        return summary

    def timeline(
        self,
        member: Member,
        as_of: date,
        past_window: int | None = None,
        future_window: int | None = None,
    ) -> list[TimelineEntry]:
        """Build a bounded timeline around the current period.

        The window runs from past_window periods before the current one
        (never earlier than the first due period) to future_window periods
        after it.

        Args:
            member: Member to display
            as_of: Reference date
            past_window: Periods before current (default from configuration)
            future_window: Periods after current (default from configuration)

        Returns:
            Ascending list of TimelineEntry; empty when no billing is configured

        Raises:
            ValueError: If a window size is negative
        """
        if not member.has_billing:
            return []

        interval = member.interval
        if past_window is None:
            past_window = (
                self.default_past_window_quarterly
                if interval == ContributionInterval.QUARTERLY
                else self.default_past_window
            )
        if future_window is None:
            future_window = self.default_future_window
        if past_window < 0 or future_window < 0:
            raise ValueError("Timeline windows must not be negative")

        current = period_calendar.period_key_of(as_of, interval)
        first_due = self.schedule.first_due_period(member, as_of)
        start = period_calendar.max_key(period_calendar.shift(current, -past_window), first_due)
        end = period_calendar.shift(current, future_window)
        if period_calendar.compare(start, end) > 0:
            # First due lies beyond the window: show it alone
            end = start

        due_keys = {str(p.period_key) for p in self.schedule.generate(member, as_of)}
        last_billable = self.schedule.last_billable_period(member)
        paid_keys = self.ledger.paid_period_keys(member.id)

        entries = []
        for key in period_calendar.iter_periods(start, end):
            text = str(key)
            if text in paid_keys:
                label = TimelineLabel.PAID
            elif text in due_keys:
                label = TimelineLabel.OVERDUE
            elif key == current:
                label = TimelineLabel.CURRENT
            elif last_billable is not None and period_calendar.compare(key, last_billable) > 0:
                label = TimelineLabel.INACTIVE
            else:
                label = TimelineLabel.UPCOMING
            entries.append(TimelineEntry(period_key=text, label=label))
        return entries


__all__ = [
    "DuesState",
    "StatusAggregator",
    "StatusSummary",
    "TimelineEntry",
    "TimelineLabel",
]
