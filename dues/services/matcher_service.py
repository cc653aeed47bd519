"""Transaction matching: suggest vouchers that may settle a due period.

Ranking, strongest signal first:
1. Amount: equal to the due amount within tolerance, then a 2x..6x multiple
   (several periods paid at once), then no amount match
2. Booked inside the period window before booked outside it
3. Similarity between the member name and the voucher text
4. Fewer days between booking date and the period's nominal due date

The matcher only reads from the transaction store. Linking a suggestion is a
separate mark-paid call made by the operator.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from difflib import SequenceMatcher
from typing import Iterable, Optional

from dues.services import period_calendar
from dues.services.period_calendar import PeriodKey
from dues.services.stores import TransactionStore, TransactionSummary

logger = logging.getLogger(__name__)

AMOUNT_EXACT = "exact"
AMOUNT_MULTIPLE = "multiple"
AMOUNT_NONE = "none"

_AMOUNT_TIERS = {AMOUNT_EXACT: 0, AMOUNT_MULTIPLE: 1, AMOUNT_NONE: 2}

MAX_COMBINED_PERIODS = 6

# Minimum name score for a voucher without amount match to be suggested
NAME_MATCH_THRESHOLD = 0.5

# Generic words in dues transfers ("Mitgliedsbeitrag", "membership fee")
DUES_KEYWORDS = ("mitglied", "beitrag", "membership", "dues", "contribution")

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


@dataclass(frozen=True)
class TransactionCandidate:
    """A voucher suggested for a due period, with its ranking signals."""

    transaction: TransactionSummary
    amount_match: str
    multiple: int | None
    in_window: bool
    name_score: float
    days_from_due: int

    @property
    def rank_key(self) -> tuple:
        return (
            _AMOUNT_TIERS[self.amount_match],
            0 if self.in_window else 1,
            -self.name_score,
            self.days_from_due,
            self.transaction.id,
        )


@dataclass(frozen=True)
class SearchWindow:
    """Date range searched for a period."""

    date_from: date
    date_to: date
    period_start: date
    period_end: date


def name_similarity(name: str | None, text: str | None) -> float:
    """Score how well a voucher text names a member (0-1).

    Each name part of two or more letters counts fully when it appears as a
    word (or, for parts of four letters or more, inside a word) and partially
    when a long word is a near-typo of it. Texts mentioning only generic
    dues keywords get a weak score.

    Examples:
        >>> name_similarity("Umut Tanis", "Umut Mitgliedsbeitrag")
        0.5
        >>> name_similarity("Anna Berg", "ANNA BERG Beitrag 2024")
        1.0
    """
    if not name or not text:
        return 0.0

    parts = [p for p in name.lower().split() if len(p) >= 2]
    haystack = text.lower()
    tokens = _TOKEN_RE.findall(haystack)
    if not parts or not tokens:
        return 0.0

    total = 0.0
    for part in parts:
        if part in tokens:
            total += 1.0
        elif len(part) >= 4 and any(part in token for token in tokens):
            total += 0.8
        elif len(part) >= 6:
            # Typo tolerance only for long names: short ones differ by one letter
            best = max(
                (SequenceMatcher(None, part, token).ratio() for token in tokens if len(token) >= 6),
                default=0.0,
            )
            if best >= 0.85:
                total += best * 0.7

    score = total / len(parts)
    if score == 0.0 and any(keyword in haystack for keyword in DUES_KEYWORDS):
        score = 0.2
    return round(score, 4)


class TransactionMatcher:
    """Suggest and search accounting transactions for due periods."""

    def __init__(
        self,
        store: TransactionStore,
        lookback_days: int = 90,
        grace_days: int = 14,
        tolerance: Decimal = Decimal("0.01"),
        limit: int = 10,
    ):
        """Initialize matcher.

        Args:
            store: Transaction store to read from
            lookback_days: Days searched before the period starts
            grace_days: Days searched after the period ends
            tolerance: Currency rounding tolerance for amount equality
            limit: Default maximum number of suggestions
        """
        self.store = store
        self.lookback_days = lookback_days
        self.grace_days = grace_days
        self.tolerance = Decimal(tolerance)
        self.limit = limit

    def search_window(self, period_key: PeriodKey) -> SearchWindow:
        """Get the date range searched for a period.

        Payments often arrive before the formal due window, so the range
        reaches back lookback_days; forward it stops grace_days after the
        period ends.
        """
        window = period_calendar.range_of(period_key)
        return SearchWindow(
            date_from=window.start - timedelta(days=self.lookback_days),
            date_to=window.end + timedelta(days=self.grace_days),
            period_start=window.start,
            period_end=window.end,
        )

    def classify_amount(self, due_amount: Decimal, paid: Decimal) -> tuple[str, int | None]:
        """Classify a transaction amount against the due amount.

        Returns:
            (AMOUNT_EXACT, 1), (AMOUNT_MULTIPLE, n) or (AMOUNT_NONE, None)
        """
        due_amount = Decimal(due_amount)
        paid = abs(Decimal(paid))
        if abs(paid - due_amount) <= self.tolerance:
            return AMOUNT_EXACT, 1
        if due_amount > 0:
            for multiple in range(2, MAX_COMBINED_PERIODS + 1):
                if abs(paid - due_amount * multiple) <= self.tolerance * multiple:
                    return AMOUNT_MULTIPLE, multiple
        return AMOUNT_NONE, None

    def suggest(
        self,
        member_name: str | None,
        amount: Decimal,
        period_key: PeriodKey | str,
        exclude_voucher_ids: Iterable[int] = (),
        limit: Optional[int] = None,
    ) -> list[TransactionCandidate]:
        """Rank candidate transactions for a due period.

        Args:
            member_name: Member's name, matched against voucher text
            amount: Amount due for the period
            period_key: Period to settle (text is validated)
            exclude_voucher_ids: Vouchers already linked elsewhere
            limit: Maximum suggestions (default: matcher limit)

        Returns:
            Candidates ordered best first

        Raises:
            InvalidPeriodFormatError: If period_key text is malformed
        """
        if not isinstance(period_key, PeriodKey):
            period_key = period_calendar.parse(period_key)
        window = self.search_window(period_key)
        excluded = set(exclude_voucher_ids)

        transactions = self.store.search_transactions(window.date_from, window.date_to)

        candidates = []
        for tx in transactions:
            if tx.id in excluded:
                continue
            if not (window.date_from <= tx.date <= window.date_to):
                continue
            amount_match, multiple = self.classify_amount(amount, tx.amount)
            score = name_similarity(member_name, tx.text)
            if amount_match == AMOUNT_NONE and score < NAME_MATCH_THRESHOLD:
                continue
            candidates.append(
                TransactionCandidate(
                    transaction=tx,
                    amount_match=amount_match,
                    multiple=multiple,
                    in_window=window.period_start <= tx.date <= window.period_end,
                    name_score=score,
                    days_from_due=abs((tx.date - window.period_start).days),
                )
            )

        candidates.sort(key=lambda c: c.rank_key)
        limit = self.limit if limit is None else limit
        logger.debug(
            "Suggestions for period %s amount=%s: %d of %d transactions matched",
            period_key,
            amount,
            len(candidates),
            len(transactions),
        )
        return candidates[:limit]

    def search(
        self,
        query: Optional[str],
        date_from: date,
        date_to: date,
        limit: Optional[int] = None,
    ) -> list[TransactionSummary]:
        """Manual search: filter transactions by text and date, unranked.

        Raises:
            ValueError: If date_from is after date_to
        """
        if date_from > date_to:
            raise ValueError("date_from must not be after date_to")
        rows = self.store.search_transactions(date_from, date_to, query)
        return rows if limit is None else rows[:limit]


__all__ = [
    "AMOUNT_EXACT",
    "AMOUNT_MULTIPLE",
    "AMOUNT_NONE",
    "SearchWindow",
    "TransactionCandidate",
    "TransactionMatcher",
    "name_similarity",
]
