"""Member ORM model with recurring contribution settings."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dues.models import Base, BaseModel


class ContributionInterval(str, Enum):
    """Billing interval of a member's recurring contribution."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class MemberStatus(str, Enum):
    """Membership lifecycle status."""

    ACTIVE = "ACTIVE"
    NEW = "NEW"
    """Application received, not yet billed."""

    PAUSED = "PAUSED"
    LEFT = "LEFT"


class Member(Base, BaseModel):
    """Model representing a club member.

    Members are created and edited by the membership register; the dues engine
    only reads them. Billing is inert unless both contribution_amount and
    contribution_interval are set.
    """

    __tablename__ = "members"

    member_no: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        unique=True,
        comment="Human-facing membership number",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Full name")
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[MemberStatus] = mapped_column(
        String(20),
        nullable=False,
        default=MemberStatus.ACTIVE,
        comment="ACTIVE, NEW, PAUSED or LEFT",
    )

    join_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    leave_date: Mapped[date | None] = mapped_column(
        Date, nullable=True, comment="No dues accrue for periods starting after this date"
    )
    next_due_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Operator override: first due date when later than join_date",
    )

    contribution_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2),
        nullable=True,
        comment="Amount owed per period (NULL = no recurring billing)",
    )
    contribution_interval: Mapped[ContributionInterval | None] = mapped_column(
        String(20),
        nullable=True,
        comment="MONTHLY, QUARTERLY or YEARLY",
    )

    payments: Mapped[list["MembershipPayment"]] = relationship(  # noqa: F821
        "MembershipPayment",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_member_name", "name"),
        Index("idx_member_status", "status"),
    )

    @property
    def has_billing(self) -> bool:
        """True when the member has a recurring contribution configured."""
        return self.contribution_amount is not None and self.contribution_interval is not None

    @property
    def interval(self) -> ContributionInterval | None:
        """Contribution interval coerced to the enum (SQLite returns plain strings)."""
        if self.contribution_interval is None:
            return None
        return ContributionInterval(self.contribution_interval)

    def __repr__(self) -> str:
        return (
            f"<Member(id={self.id}, name={self.name!r}, status={self.status}, "
            f"amount={self.contribution_amount}, interval={self.contribution_interval})>"
        )


__all__ = ["Member", "MemberStatus", "ContributionInterval"]
