"""Due schedule generation: which periods a member owes up to a given date."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from dues.models.member import ContributionInterval, Member
from dues.services import period_calendar
from dues.services.period_calendar import PeriodKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuePeriod:
    """A billing period a member owes a contribution for."""

    period_key: PeriodKey
    interval: ContributionInterval
    amount: Decimal
    window_start: date
    window_end: date


class DueScheduleGenerator:
    """Derive due periods from a member's billing settings.

    Stateless: schedules are computed on every call from the member record
    and an explicit as-of date, nothing is stored.
    """

    def first_due_period(self, member: Member, as_of: date | None = None) -> PeriodKey | None:
        """Get the first period the member owes.

        The first due date is the later of join_date and the operator's
        next_due_date override. When neither is set, billing starts with the
        period containing as_of.

        Args:
            member: Member to inspect
            as_of: Fallback reference date

        Returns:
            First due PeriodKey, or None if the member has no billing
            configured (or no anchor and no as_of)
        """
        if not member.has_billing:
            return None

        anchors = [d for d in (member.join_date, member.next_due_date) if d is not None]
        if anchors:
            anchor = max(anchors)
        elif as_of is not None:
            anchor = as_of
        else:
            return None
        return period_calendar.period_key_of(anchor, member.interval)

    def last_billable_period(self, member: Member) -> PeriodKey | None:
        """Get the last period a departed member still owes (None if not departed).

        A period is owed when it starts on or before the leave date.
        """
        if not member.has_billing or member.leave_date is None:
            return None
        return period_calendar.period_key_of(member.leave_date, member.interval)

    def generate(self, member: Member, as_of: date) -> list[DuePeriod]:
        """Generate the due periods from first due through the as-of period.

        Args:
            member: Member with billing settings
            as_of: Reference date ("now")

        Returns:
            Ascending list of DuePeriod; empty when no billing is configured,
            when the first due period lies after as_of, or when the member
            left before the first due period started
        """
        if not member.has_billing:
            logger.debug("Member %s has no contribution configured, schedule is empty", member.id)
            return []

        first = self.first_due_period(member, as_of)
        current = period_calendar.period_key_of(as_of, member.interval)
        return self._build(member, first, current)

    def billing_span(self, member: Member, date_from: date, date_to: date) -> list[DuePeriod]:
        """Generate the due periods falling inside an arbitrary date range.

        The lower bound is clamped to the first due period and the upper bound
        to the leave date, so the batch due list never shows periods a member
        does not owe.

        Args:
            member: Member with billing settings
            date_from: Range start (inclusive)
            date_to: Range end (inclusive)

        Returns:
            Ascending list of DuePeriod (possibly empty)
        """
        if not member.has_billing or date_from > date_to:
            return []

        interval = member.interval
        start = period_calendar.period_key_of(date_from, interval)
        first = self.first_due_period(member, date_from)
        if first is not None:
            start = period_calendar.max_key(start, first)
        end = period_calendar.period_key_of(date_to, interval)
        return self._build(member, start, end)

    def _build(self, member: Member, start: PeriodKey, end: PeriodKey) -> list[DuePeriod]:
        last = self.last_billable_period(member)
        if last is not None:
            end = period_calendar.min_key(end, last)

        amount = Decimal(member.contribution_amount)
        periods = []
        for key in period_calendar.iter_periods(start, end):
            window = period_calendar.range_of(key)
            periods.append(
                DuePeriod(
                    period_key=key,
                    interval=member.interval,
                    amount=amount,
                    window_start=window.start,
                    window_end=window.end,
                )
            )
        return periods


__all__ = ["DuePeriod", "DueScheduleGenerator"]
