"""Read-only adapters for the collaborators the dues engine consumes.

- MemberStore: membership register (get_member, billed member listing)
- TransactionStore: accounting vouchers (search_transactions)

The SQLAlchemy implementations read the members and vouchers tables; other
implementations only need to honor the same method signatures.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from dues.models.member import ContributionInterval, Member, MemberStatus
from dues.models.voucher import Voucher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionSummary:
    """Accounting transaction as seen by the matcher."""

    id: int
    date: date
    amount: Decimal
    description: str | None = None
    counterparty: str | None = None
    voucher_no: str | None = None

    @property
    def text(self) -> str:
        """Description and counterparty joined for free-text matching."""
        return " ".join(part for part in (self.description, self.counterparty) if part)


class MemberStore(Protocol):
    """Membership register interface."""

    def get_member(self, member_id: int) -> Optional[Member]: ...

    def list_billed_members(
        self,
        interval: ContributionInterval,
        statuses: Iterable[MemberStatus],
        filter_text: Optional[str] = None,
    ) -> list[Member]: ...


class TransactionStore(Protocol):
    """Accounting transaction store interface."""

    def search_transactions(
        self, date_from: date, date_to: date, text_query: Optional[str] = None
    ) -> list[TransactionSummary]: ...

    def get_transaction(self, transaction_id: int) -> Optional[TransactionSummary]: ...


class SqlMemberStore:
    """MemberStore backed by the members table."""

    def __init__(self, db: Session):
        self.db = db

    def get_member(self, member_id: int) -> Optional[Member]:
        """Get member by ID, None if not found."""
        return self.db.get(Member, member_id)

    def list_billed_members(
        self,
        interval: ContributionInterval,
        statuses: Iterable[MemberStatus],
        filter_text: Optional[str] = None,
    ) -> list[Member]:
        """List members billed at the given interval, ordered by name.

        Args:
            interval: Contribution interval to select
            statuses: Member statuses to include
            filter_text: Optional case-insensitive match on name, email or member number

        Returns:
            List of Member objects with an amount configured
        """
        stmt = select(Member).where(
            Member.contribution_amount.is_not(None),
            Member.contribution_interval == ContributionInterval(interval).value,
            Member.status.in_([MemberStatus(s).value for s in statuses]),
        )
        if filter_text and filter_text.strip():
            like = f"%{filter_text.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Member.name).like(like),
                    func.lower(func.coalesce(Member.email, "")).like(like),
                    func.lower(func.coalesce(Member.member_no, "")).like(like),
                )
            )
        stmt = stmt.order_by(func.lower(Member.name), Member.id)
        return list(self.db.execute(stmt).scalars())


class SqlTransactionStore:
    """TransactionStore backed by the vouchers table."""

    def __init__(self, db: Session, max_rows: int = 500):
        """Initialize store.

        Args:
            db: SQLAlchemy database session
            max_rows: Upper bound on rows read by a single search
        """
        self.db = db
        self.max_rows = max_rows

    def search_transactions(
        self, date_from: date, date_to: date, text_query: Optional[str] = None
    ) -> list[TransactionSummary]:
        """Find vouchers dated within a range, newest first.

        Args:
            date_from: First date (inclusive)
            date_to: Last date (inclusive)
            text_query: Optional case-insensitive match on description,
                counterparty or voucher number

        Returns:
            List of TransactionSummary, at most max_rows long
        """
        stmt = select(Voucher).where(
            Voucher.voucher_date >= date_from,
            Voucher.voucher_date <= date_to,
        )
        if text_query and text_query.strip():
            like = f"%{text_query.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(func.coalesce(Voucher.description, "")).like(like),
                    func.lower(func.coalesce(Voucher.counterparty, "")).like(like),
                    func.lower(Voucher.voucher_no).like(like),
                )
            )
        stmt = stmt.order_by(Voucher.voucher_date.desc(), Voucher.id.desc()).limit(self.max_rows)
        rows = [self._summary(v) for v in self.db.execute(stmt).scalars()]
        logger.debug(
            "Voucher search %s..%s query=%r returned %d rows", date_from, date_to, text_query, len(rows)
        )
        return rows

    def get_transaction(self, transaction_id: int) -> Optional[TransactionSummary]:
        """Get a single voucher summary, None if it does not exist (stale link)."""
        voucher = self.db.get(Voucher, transaction_id)
        return self._summary(voucher) if voucher else None

    @staticmethod
    def _summary(voucher: Voucher) -> TransactionSummary:
        return TransactionSummary(
            id=voucher.id,
            date=voucher.voucher_date,
            amount=Decimal(voucher.gross_amount),
            description=voucher.description,
            counterparty=voucher.counterparty,
            voucher_no=voucher.voucher_no,
        )


__all__ = [
    "MemberStore",
    "SqlMemberStore",
    "SqlTransactionStore",
    "TransactionStore",
    "TransactionSummary",
]
