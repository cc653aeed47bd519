"""Declarative base, timestamp mixin and model exports for the dues schema."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Explicit constraint names keep alembic batch migrations stable on SQLite
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """Surrogate key plus creation and modification timestamps."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# Model modules import Base from here, so they are registered last
from dues.models.audit_log import AuditLog  # noqa: E402
from dues.models.member import ContributionInterval, Member, MemberStatus  # noqa: E402
from dues.models.membership_payment import MembershipPayment  # noqa: E402
from dues.models.voucher import Voucher  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "ContributionInterval",
    "Member",
    "MemberStatus",
    "MembershipPayment",
    "Voucher",
]
