"""Voucher ORM model: read-only view of the accounting transaction store."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dues.models import Base, BaseModel


class Voucher(Base, BaseModel):
    """Posted accounting transaction.

    Vouchers are owned by the bookkeeping side of the application. The dues
    engine reads date, amount and free text for reconciliation and never
    writes to this table.
    """

    __tablename__ = "vouchers"

    voucher_no: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, comment="Voucher number, e.g. 2025-0042"
    )
    voucher_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    counterparty: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Payer or payee name as booked"
    )
    gross_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (Index("idx_voucher_date_amount", "voucher_date", "gross_amount"),)

    def __repr__(self) -> str:
        return (
            f"<Voucher(id={self.id}, no={self.voucher_no}, date={self.voucher_date}, "
            f"amount={self.gross_amount})>"
        )


__all__ = ["Voucher"]
