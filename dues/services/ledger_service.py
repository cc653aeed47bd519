"""Payment ledger: persisted paid/unpaid state per member and period.

Provides methods for:
- Marking a period paid (upsert, optionally linked to a voucher)
- Unmarking a period (idempotent delete)
- Payment history and paid-state lookups
"""

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dues.models.member import ContributionInterval
from dues.models.membership_payment import MembershipPayment
from dues.services import period_calendar
from dues.services.audit_service import AuditService

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 200

# Mutations for one member are serialized process-wide. Members share a fixed
# set of lock stripes, so the registry does not grow with the member count.
LOCK_STRIPES = 64
_member_locks: tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


def member_lock(member_id: int) -> threading.Lock:
    """Get the lock serializing ledger writes for a member."""
    return _member_locks[member_id % LOCK_STRIPES]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentLedgerService:
    """Service for membership payment records.

    At most one MembershipPayment exists per (member_id, period_key). Writes
    are serialized per member and the unique constraint backs that up across
    processes.
    """

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        """Initialize ledger service.

        Args:
            db: SQLAlchemy database session
            clock: Source of "now" for date_paid (default: UTC wall clock)
        """
        self.db = db
        self.clock = clock or _utcnow

    def mark_paid(
        self,
        member_id: int,
        period_key: str,
        interval: ContributionInterval | str,
        amount: Decimal,
        voucher_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> MembershipPayment:
        """Mark a member period paid.

        Creates the record on first call; later calls update amount,
        date_paid and voucher_id in place (last writer wins). verified is
        True only when a voucher is linked.

        Args:
            member_id: Member ID
            period_key: Period key text, validated against interval
            interval: Billing interval of the period
            amount: Amount paid
            voucher_id: Optional accounting voucher backing the payment
            actor_id: Operator performing the change (for the audit log)

        Returns:
            The created or updated MembershipPayment

        Raises:
            InvalidPeriodFormatError: If period_key does not parse under interval
        """
        key = period_calendar.parse(period_key, interval)
        key_text = str(key)
        amount = Decimal(amount)

        with member_lock(member_id):
            payment = self.get(member_id, key_text)
            action = "update" if payment else "create"
            if payment is None:
                payment = MembershipPayment(member_id=member_id, period_key=key_text)
                self.db.add(payment)
            self._apply(payment, key, amount, voucher_id)

            try:
                self.db.flush()
            except IntegrityError:
                # A writer outside this process inserted the row first
                self.db.rollback()
                logger.warning(
                    "Concurrent insert for member_id=%d period=%s, updating existing row",
                    member_id,
                    key_text,
                )
                payment = self.get(member_id, key_text)
                if payment is None:
                    raise
                action = "update"
                self._apply(payment, key, amount, voucher_id)
                self.db.flush()

            AuditService.record_payment(
                self.db,
                payment.id,
                action,
                member_id,
                actor_id,
                {
                    "period_key": key_text,
                    "amount": str(amount),
                    "voucher_id": voucher_id,
                },
            )
            self.db.commit()
            self.db.refresh(payment)

        logger.info(
            "Marked paid: member_id=%d, period=%s, amount=%s, voucher_id=%s, action=%s",
            member_id,
            key_text,
            amount,
            voucher_id,
            action,
        )
        return payment

    def _apply(
        self,
        payment: MembershipPayment,
        key: period_calendar.PeriodKey,
        amount: Decimal,
        voucher_id: Optional[int],
    ) -> None:
        payment.interval = key.interval.value
        payment.amount = amount
        payment.date_paid = self.clock()
        payment.voucher_id = voucher_id
        payment.verified = voucher_id is not None

    def unmark(self, member_id: int, period_key: str, actor_id: Optional[int] = None) -> bool:
        """Remove the payment record for a member period.

        Unmarking a period that was never paid is a no-op.

        Args:
            member_id: Member ID
            period_key: Period key text (validated)
            actor_id: Operator performing the change (for the audit log)

        Returns:
            True if a record was deleted, False if none existed

        Raises:
            InvalidPeriodFormatError: If period_key is malformed
        """
        key_text = str(period_calendar.parse(period_key))

        with member_lock(member_id):
            payment = self.get(member_id, key_text)
            if payment is None:
                logger.debug("Unmark no-op: member_id=%d period=%s not paid", member_id, key_text)
                return False

            payment_id = payment.id
            self.db.delete(payment)
            AuditService.record_payment(
                self.db, payment_id, "delete", member_id, actor_id, {"period_key": key_text}
            )
            self.db.commit()

        logger.info("Unmarked: member_id=%d, period=%s", member_id, key_text)
        return True

    def get(self, member_id: int, period_key: str) -> Optional[MembershipPayment]:
        """Get the payment record for a member period, if any."""
        return self.db.execute(
            select(MembershipPayment).where(
                MembershipPayment.member_id == member_id,
                MembershipPayment.period_key == period_key,
            )
        ).scalar_one_or_none()

    def is_paid(self, member_id: int, period_key: str) -> bool:
        """Check whether a member period has a payment record.

        Uses the (member_id, period_key) index.
        """
        found = self.db.execute(
            select(MembershipPayment.id)
            .where(
                MembershipPayment.member_id == member_id,
                MembershipPayment.period_key == str(period_key),
            )
            .limit(1)
        ).first()
        return found is not None

    def history(self, member_id: int, limit: int = 50, offset: int = 0) -> list[MembershipPayment]:
        """List a member's payments, most recently paid first.

        Args:
            member_id: Member ID
            limit: Page size, clamped to 1..200
            offset: Rows to skip

        Returns:
            List of MembershipPayment ordered by date_paid descending
        """
        limit = max(1, min(MAX_HISTORY_LIMIT, limit))
        offset = max(0, offset)
        return list(
            self.db.execute(
                select(MembershipPayment)
                .where(MembershipPayment.member_id == member_id)
                .order_by(MembershipPayment.date_paid.desc(), MembershipPayment.id.desc())
                .limit(limit)
                .offset(offset)
            ).scalars()
        )

    def records_for(self, member_id: int) -> list[MembershipPayment]:
        """Get all payment records of a member (unordered)."""
        return list(
            self.db.execute(
                select(MembershipPayment).where(MembershipPayment.member_id == member_id)
            ).scalars()
        )

    def paid_period_keys(self, member_id: int) -> set[str]:
        """Get the set of period keys a member has paid."""
        return set(
            self.db.execute(
                select(MembershipPayment.period_key).where(
                    MembershipPayment.member_id == member_id
                )
            ).scalars()
        )

    def records_by_member(
        self, member_ids: Iterable[int], period_keys: Iterable[str] | None = None
    ) -> dict[tuple[int, str], MembershipPayment]:
        """Bulk-load payment records keyed by (member_id, period_key)."""
        member_ids = list(member_ids)
        if not member_ids:
            return {}
        stmt = select(MembershipPayment).where(MembershipPayment.member_id.in_(member_ids))
        if period_keys is not None:
            stmt = stmt.where(MembershipPayment.period_key.in_(list(period_keys)))
        return {(p.member_id, p.period_key): p for p in self.db.execute(stmt).scalars()}

    def voucher_ids_in_use(
        self, exclude_member_id: Optional[int] = None, exclude_period_key: Optional[str] = None
    ) -> set[int]:
        """Get voucher ids already linked to a payment record.

        Args:
            exclude_member_id: Together with exclude_period_key, ignore the
                link of this one record (so its own voucher stays suggestible)
            exclude_period_key: See exclude_member_id

        Returns:
            Set of linked voucher ids
        """
        rows = self.db.execute(
            select(
                MembershipPayment.voucher_id,
                MembershipPayment.member_id,
                MembershipPayment.period_key,
            ).where(MembershipPayment.voucher_id.is_not(None))
        ).all()
        return {
            voucher_id
            for voucher_id, member_id, key in rows
            if not (member_id == exclude_member_id and key == exclude_period_key)
        }


__all__ = ["PaymentLedgerService", "member_lock", "LOCK_STRIPES", "MAX_HISTORY_LIMIT"]
