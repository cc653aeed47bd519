"""Membership payment ORM model: one row per member and billing period."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dues.models import Base, BaseModel


class MembershipPayment(Base, BaseModel):
    """Payment record for a single member period.

    At most one row exists per (member_id, period_key); marking a period paid
    again updates the row in place. voucher_id is a weak reference into the
    accounting store: there is no foreign key, so deleting the voucher leaves
    a stale link behind instead of cascading.
    """

    __tablename__ = "membership_payments"

    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        comment="Paying member",
    )
    period_key: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="Canonical period key: YYYY-MM, YYYY-Qn or YYYY",
    )
    interval: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="MONTHLY, QUARTERLY or YEARLY"
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    date_paid: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Time of the latest mark-paid call",
    )
    voucher_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="Linked accounting voucher (lookup only)",
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="True when backed by a linked voucher",
    )

    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="payments",
    )

    __table_args__ = (
        UniqueConstraint("member_id", "period_key", name="uq_membership_payment_member_period"),
        Index("idx_mp_member_period", "member_id", "period_key"),
        Index("idx_mp_date_paid", "date_paid"),
    )

    def __repr__(self) -> str:
        return (
            f"<MembershipPayment(id={self.id}, member_id={self.member_id}, "
            f"period_key={self.period_key}, amount={self.amount}, voucher_id={self.voucher_id})>"
        )


__all__ = ["MembershipPayment"]
