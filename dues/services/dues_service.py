"""Dues service: the operations exposed to the API and automation jobs.

Resolves members through the membership store and wires together the
schedule generator, payment ledger, status aggregator and transaction
matcher. All period keys arriving as text are validated here or in the
ledger before use.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from dues.config import Settings, get_settings
from dues.models.audit_log import AuditLog
from dues.models.member import ContributionInterval, Member, MemberStatus
from dues.models.membership_payment import MembershipPayment
from dues.services import period_calendar
from dues.services.audit_service import AuditService
from dues.services.errors import AmountMismatchWarning, MemberNotFoundError, NoBillingConfiguredError
from dues.services.ledger_service import MAX_HISTORY_LIMIT, PaymentLedgerService
from dues.services.matcher_service import TransactionCandidate, TransactionMatcher
from dues.services.schedule_service import DuePeriod, DueScheduleGenerator
from dues.services.status_service import StatusAggregator, StatusSummary, TimelineEntry
from dues.services.stores import (
    MemberStore,
    SqlMemberStore,
    SqlTransactionStore,
    TransactionStore,
    TransactionSummary,
)

logger = logging.getLogger(__name__)


@dataclass
class MarkPaidResult:
    """Outcome of a mark-paid call: the record plus soft warnings."""

    record: MembershipPayment
    warnings: list[AmountMismatchWarning] = field(default_factory=list)


@dataclass(frozen=True)
class DueRow:
    """One member period in the batch due list."""

    member_id: int
    name: str
    member_no: str | None
    status: str
    period_key: str
    interval: str
    amount: Decimal
    paid: bool
    voucher_id: int | None = None
    verified: bool = False


class DuesService:
    """Facade over the dues engine components."""

    def __init__(
        self,
        db: Session,
        member_store: Optional[MemberStore] = None,
        transaction_store: Optional[TransactionStore] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize dues service.

        Args:
            db: SQLAlchemy database session (ledger storage)
            member_store: Membership register (default: members table)
            transaction_store: Accounting store (default: vouchers table)
            settings: Engine settings (default: environment settings)
            clock: Source of "now" for payment timestamps
        """
        self.db = db
        self.settings = settings or get_settings()
        self.members = member_store or SqlMemberStore(db)
        self.transactions = transaction_store or SqlTransactionStore(db)
        self.schedule = DueScheduleGenerator()
        self.ledger = PaymentLedgerService(db, clock=clock)
        self.aggregator = StatusAggregator(
            self.ledger,
            self.schedule,
            default_past_window=self.settings.timeline_past_window,
            default_past_window_quarterly=self.settings.timeline_past_window_quarterly,
            default_future_window=self.settings.timeline_future_window,
        )
        self.matcher = TransactionMatcher(
            self.transactions,
            lookback_days=self.settings.suggestion_lookback_days,
            grace_days=self.settings.suggestion_grace_days,
            tolerance=self.settings.amount_tolerance,
            limit=self.settings.suggestion_limit,
        )

    def get_member(self, member_id: int) -> Member:
        """Get member or raise MemberNotFoundError."""
        member = self.members.get_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return member

    def generate_schedule(self, member_id: int, as_of: date) -> list[DuePeriod]:
        """Get the due periods of a member up to as_of (oldest first)."""
        return self.schedule.generate(self.get_member(member_id), as_of)

    def get_status(self, member_id: int, as_of: date) -> StatusSummary:
        """Get a member's dues status as of a date."""
        return self.aggregator.status(self.get_member(member_id), as_of)

    def get_timeline(
        self,
        member_id: int,
        as_of: date,
        past: Optional[int] = None,
        future: Optional[int] = None,
    ) -> list[TimelineEntry]:
        """Get the bounded timeline view of a member."""
        return self.aggregator.timeline(self.get_member(member_id), as_of, past, future)

    def mark_paid(
        self,
        member_id: int,
        period_key: str,
        interval: ContributionInterval | str,
        amount: Decimal,
        voucher_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> MarkPaidResult:
        """Mark a member period paid, optionally linking a voucher.

        The caller supplies the amount; it is stored as given. When it (or the
        linked voucher's amount) differs from the member's scheduled amount by
        more than the tolerance, the result carries AmountMismatchWarning
        entries but the payment is still recorded.

        Raises:
            MemberNotFoundError: If the member does not exist
            InvalidPeriodFormatError: If period_key does not parse under interval
        """
        member = self.get_member(member_id)
        amount = Decimal(amount)
        record = self.ledger.mark_paid(member_id, period_key, interval, amount, voucher_id, actor_id)

        warnings = []
        tolerance = self.settings.amount_tolerance
        expected = (
            Decimal(member.contribution_amount)
            if member.contribution_amount is not None
            else amount
        )
        if abs(amount - expected) > tolerance:
            warnings.append(AmountMismatchWarning(expected, amount, "Paid"))

        if voucher_id is not None:
            transaction = self.transactions.get_transaction(voucher_id)
            if transaction is None:
                logger.warning(
                    "Linked voucher %d not found for member_id=%d period=%s",
                    voucher_id,
                    member_id,
                    record.period_key,
                )
            elif abs(abs(transaction.amount) - expected) > tolerance:
                warnings.append(AmountMismatchWarning(expected, transaction.amount, "Voucher"))

        for warning in warnings:
            logger.warning(
                "Amount mismatch for member_id=%d period=%s: %s",
                member_id,
                record.period_key,
                warning.message,
            )
        return MarkPaidResult(record=record, warnings=warnings)

    def unmark(self, member_id: int, period_key: str, actor_id: Optional[int] = None) -> bool:
        """Remove a payment record; no-op if the period was not paid."""
        self.get_member(member_id)
        return self.ledger.unmark(member_id, period_key, actor_id)

    def get_history(
        self, member_id: int, limit: Optional[int] = None, offset: int = 0
    ) -> list[MembershipPayment]:
        """Get a member's payments, most recently paid first."""
        self.get_member(member_id)
        if limit is None:
            limit = self.settings.history_default_limit
        return self.ledger.history(member_id, limit, offset)

    def get_audit_trail(self, member_id: int, limit: Optional[int] = None) -> list[AuditLog]:
        """Get the payment audit entries of a member, newest first."""
        self.get_member(member_id)
        if limit is None:
            limit = self.settings.history_default_limit
        return AuditService.member_trail(self.db, member_id, max(1, min(MAX_HISTORY_LIMIT, limit)))

    def suggest_transactions(
        self, member_id: int, period_key: str, limit: Optional[int] = None
    ) -> list[TransactionCandidate]:
        """Suggest vouchers that may settle a member period.

        Vouchers already linked to another payment are skipped; the voucher
        currently linked to this very period stays eligible.

        Raises:
            MemberNotFoundError: If the member does not exist
            NoBillingConfiguredError: If the member has no contribution set
            InvalidPeriodFormatError: If period_key is not a key of the
                member's interval
        """
        member = self.get_member(member_id)
        if not member.has_billing:
            raise NoBillingConfiguredError(member_id)

        key = period_calendar.parse(period_key, member.interval)
        linked = self.ledger.voucher_ids_in_use(member_id, str(key))
        return self.matcher.suggest(
            member.name, Decimal(member.contribution_amount), key, linked, limit
        )

    def search_transactions(
        self,
        query: Optional[str],
        date_from: date,
        date_to: date,
        limit: Optional[int] = None,
    ) -> list[TransactionSummary]:
        """Manual voucher search by text and date range, unranked."""
        return self.matcher.search(query, date_from, date_to, limit)

    def list_due_periods_across_members(
        self,
        interval: ContributionInterval | str,
        period_key: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        filter_text: Optional[str] = None,
        include_paid: bool = False,
        as_of: Optional[date] = None,
    ) -> list[DueRow]:
        """List due member periods for one billing run.

        Selects ACTIVE members (and PAUSED ones when configured) billed at the
        given interval. The periods are either a single period key, every
        period touching a date range, or the period containing as_of, in that
        order of precedence. Each member only contributes periods it owes
        (not before its first due period, not after its leave date).

        Args:
            interval: Billing interval of the run
            period_key: Single period to list
            date_from: Range start (requires date_to)
            date_to: Range end (requires date_from)
            filter_text: Optional match on name, email or member number
            include_paid: Also list periods that are already paid
            as_of: Reference date when neither key nor range is given

        Returns:
            Rows ordered by member name, then period

        Raises:
            InvalidPeriodFormatError: If period_key does not parse under interval
            ValueError: If no period selection is given, or the range is
                inverted or has only one end
        """
        interval = ContributionInterval(interval)
        if (date_from is None) != (date_to is None):
            raise ValueError("date_from and date_to must be given together")
        if period_key is not None:
            window = period_calendar.range_of(period_calendar.parse(period_key, interval))
            date_from, date_to = window.start, window.end
        elif date_from is not None and date_to is not None:
            if date_from > date_to:
                raise ValueError("date_from must not be after date_to")
        elif as_of is not None:
            window = period_calendar.range_of(period_calendar.period_key_of(as_of, interval))
            date_from, date_to = window.start, window.end
        else:
            raise ValueError("Provide period_key, date_from and date_to, or as_of")

        statuses = [MemberStatus.ACTIVE]
        if self.settings.include_paused_members:
            statuses.append(MemberStatus.PAUSED)
        members = self.members.list_billed_members(interval, statuses, filter_text)

        spans = {member.id: self.schedule.billing_span(member, date_from, date_to) for member in members}
        records = self.ledger.records_by_member(
            [member_id for member_id, periods in spans.items() if periods]
        )

        rows = []
        for member in members:
            for period in spans[member.id]:
                key_text = str(period.period_key)
                record = records.get((member.id, key_text))
                if record is not None and not include_paid:
                    continue
                rows.append(
                    DueRow(
                        member_id=member.id,
                        name=member.name,
                        member_no=member.member_no,
                        status=MemberStatus(member.status).value,
                        period_key=key_text,
                        interval=interval.value,
                        amount=period.amount,
                        paid=record is not None,
                        voucher_id=record.voucher_id if record else None,
                        verified=bool(record.verified) if record else False,
                    )
                )

        logger.debug(
            "Due list interval=%s range=%s..%s: %d members, %d rows",
            interval.value,
            date_from,
            date_to,
            len(members),
            len(rows),
        )
        return rows


__all__ = ["DuesService", "DueRow", "MarkPaidResult"]
