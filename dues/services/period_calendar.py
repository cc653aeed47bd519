"""Billing period arithmetic.

Single authority for converting dates to period keys and for stepping,
comparing and bounding periods. Every key maps to an integer ordinal
(months since year 0, quarters since year 0, or the year itself) and all
ordering goes through that ordinal, never through string comparison.

Example:
    >>> key = parse("2025-12", ContributionInterval.MONTHLY)
    >>> str(next_period(key))
    '2026-01'
    >>> range_of(parse("2025-Q2"))
    PeriodRange(start=datetime.date(2025, 4, 1), end=datetime.date(2025, 6, 30))
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Iterator, NamedTuple

from dues.models.member import ContributionInterval
from dues.services.errors import InvalidPeriodFormatError

# Number of periods per year for each interval
PERIODS_PER_YEAR = {
    ContributionInterval.MONTHLY: 12,
    ContributionInterval.QUARTERLY: 4,
    ContributionInterval.YEARLY: 1,
}

# Years a key may name; the edges leave room for the matcher's search margins
MIN_YEAR = 1900
MAX_YEAR = 9998

_PATTERNS = {
    ContributionInterval.MONTHLY: re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$"),
    ContributionInterval.QUARTERLY: re.compile(r"^(\d{4})-Q([1-4])$"),
    ContributionInterval.YEARLY: re.compile(r"^(\d{4})$"),
}


class PeriodRange(NamedTuple):
    """First and last calendar day of a period (both inclusive)."""

    start: date
    end: date


@dataclass(frozen=True)
class PeriodKey:
    """Canonical billing period identifier.

    Attributes:
        interval: Billing interval the key belongs to
        year: Calendar year
        index: 1-based month (1..12) or quarter (1..4); always 1 for YEARLY
    """

    interval: ContributionInterval
    year: int
    index: int = 1

    @property
    def ordinal(self) -> int:
        """Integer position of the period on its interval's time line."""
        per_year = PERIODS_PER_YEAR[self.interval]
        return self.year * per_year + (self.index - 1)

    @classmethod
    def from_ordinal(cls, interval: ContributionInterval, ordinal: int) -> "PeriodKey":
        per_year = PERIODS_PER_YEAR[interval]
        year, offset = divmod(ordinal, per_year)
        return cls(interval=interval, year=year, index=offset + 1)

    def __str__(self) -> str:
        if self.interval == ContributionInterval.MONTHLY:
            return f"{self.year:04d}-{self.index:02d}"
        if self.interval == ContributionInterval.QUARTERLY:
            return f"{self.year:04d}-Q{self.index}"
        return f"{self.year:04d}"

    def __lt__(self, other: "PeriodKey") -> bool:
        return compare(self, other) < 0

    def __le__(self, other: "PeriodKey") -> bool:
        return compare(self, other) <= 0

    def __gt__(self, other: "PeriodKey") -> bool:
        return compare(self, other) > 0

    def __ge__(self, other: "PeriodKey") -> bool:
        return compare(self, other) >= 0


def period_key_of(value: date, interval: ContributionInterval | str) -> PeriodKey:
    """Get the period containing a date.

    Args:
        value: Calendar date
        interval: Billing interval

    Returns:
        PeriodKey for the month, quarter or year containing the date
    """
    interval = ContributionInterval(interval)
    if interval == ContributionInterval.MONTHLY:
        return PeriodKey(interval, value.year, value.month)
    if interval == ContributionInterval.QUARTERLY:
        return PeriodKey(interval, value.year, (value.month - 1) // 3 + 1)
    return PeriodKey(interval, value.year)


def parse(text: str, interval: ContributionInterval | str | None = None) -> PeriodKey:
    """Parse and validate a period key typed by a user.

    Years outside MIN_YEAR..MAX_YEAR are rejected.

    Args:
        text: Period key text (YYYY-MM, YYYY-Qn or YYYY)
        interval: Expected interval; inferred from the format when omitted

    Returns:
        Validated PeriodKey

    Raises:
        InvalidPeriodFormatError: If the text is not a canonical key of the
            expected (or any) interval
    """
    if not isinstance(text, str):
        raise InvalidPeriodFormatError(text, interval)

    if interval is not None:
        try:
            interval = ContributionInterval(interval)
        except ValueError as e:
            raise InvalidPeriodFormatError(text, interval) from e
        candidates = [interval]
    else:
        candidates = list(ContributionInterval)

    for candidate in candidates:
        match = _PATTERNS[candidate].fullmatch(text)
        if match:
            year = int(match.group(1))
            if not MIN_YEAR <= year <= MAX_YEAR:
                raise InvalidPeriodFormatError(text, candidate)
            index = int(match.group(2)) if candidate != ContributionInterval.YEARLY else 1
            return PeriodKey(candidate, year, index)

    raise InvalidPeriodFormatError(text, interval)


def compare(a: PeriodKey, b: PeriodKey) -> int:
    """Compare two keys of the same interval.

    Returns:
        -1, 0 or 1

    Raises:
        ValueError: If the keys belong to different intervals
    """
    if a.interval != b.interval:
        raise ValueError(f"Cannot compare {a.interval.value} key {a} with {b.interval.value} key {b}")
    if a.ordinal == b.ordinal:
        return 0
    return -1 if a.ordinal < b.ordinal else 1


def shift(key: PeriodKey, steps: int) -> PeriodKey:
    """Move a key by a whole number of periods (negative steps go back)."""
    return PeriodKey.from_ordinal(key.interval, key.ordinal + steps)


def next_period(key: PeriodKey) -> PeriodKey:
    """Get the period directly after key."""
    return shift(key, 1)


def prev_period(key: PeriodKey) -> PeriodKey:
    """Get the period directly before key."""
    return shift(key, -1)


def periods_between(start: PeriodKey, end: PeriodKey) -> int:
    """Signed number of steps from start to end (0 when equal)."""
    compare(start, end)
    return end.ordinal - start.ordinal


def range_of(key: PeriodKey) -> PeriodRange:
    """Get first and last calendar day covered by a period."""
    if key.interval == ContributionInterval.MONTHLY:
        first_month, last_month = key.index, key.index
    elif key.interval == ContributionInterval.QUARTERLY:
        first_month, last_month = (key.index - 1) * 3 + 1, key.index * 3
    else:
        first_month, last_month = 1, 12

    last_day = calendar.monthrange(key.year, last_month)[1]
    return PeriodRange(date(key.year, first_month, 1), date(key.year, last_month, last_day))


def iter_periods(start: PeriodKey, end: PeriodKey) -> Iterator[PeriodKey]:
    """Iterate keys from start to end inclusive (nothing if start > end)."""
    compare(start, end)
    return (
        PeriodKey.from_ordinal(start.interval, ordinal)
        for ordinal in range(start.ordinal, end.ordinal + 1)
    )


def max_key(a: PeriodKey, b: PeriodKey) -> PeriodKey:
    return a if compare(a, b) >= 0 else b


def min_key(a: PeriodKey, b: PeriodKey) -> PeriodKey:
    return a if compare(a, b) <= 0 else b


__all__ = [
    "MAX_YEAR",
    "MIN_YEAR",
    "PERIODS_PER_YEAR",
    "PeriodKey",
    "PeriodRange",
    "compare",
    "iter_periods",
    "max_key",
    "min_key",
    "next_period",
    "parse",
    "period_key_of",
    "periods_between",
    "prev_period",
    "range_of",
    "shift",
]
