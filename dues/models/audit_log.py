"""Audit trail of changes to payment records."""

from typing import Any

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dues.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """One change to a ledger entity.

    member_id is denormalized so a member's trail survives deletion of the
    payment row it describes.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(30), nullable=False, comment='"payment"')
    entity_id: Mapped[int] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="create, update or delete"
    )
    member_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    actor_id: Mapped[int | None] = mapped_column(
        nullable=True, comment="Operator id, NULL for automated jobs"
    )
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (Index("idx_audit_entity", "entity_type", "entity_id"),)

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, {self.entity_type}#{self.entity_id} {self.action}, "
            f"member_id={self.member_id}, actor_id={self.actor_id})>"
        )


__all__ = ["AuditLog"]
