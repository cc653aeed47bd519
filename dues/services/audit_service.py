"""Payment audit trail: write entries with ledger mutations, read them per member."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from dues.models.audit_log import AuditLog

PAYMENT_ENTITY = "payment"


class AuditService:
    """Static helpers around the audit_logs table.

    Entries are added to the caller's session and committed together with the
    change they describe.
    """

    @staticmethod
    def record_payment(
        db: Session,
        payment_id: int,
        action: str,
        member_id: int,
        actor_id: int | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Add an audit entry for a payment record change.

        Args:
            db: Database session (not committed here)
            payment_id: MembershipPayment primary key
            action: "create", "update" or "delete"
            member_id: Owner of the payment record
            actor_id: Operator performing the change
            changes: JSON snapshot of the written fields

        Returns:
            The pending AuditLog entry
        """
        entry = AuditLog(
            entity_type=PAYMENT_ENTITY,
            entity_id=payment_id,
            action=action,
            member_id=member_id,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(entry)
        return entry

    @staticmethod
    def member_trail(db: Session, member_id: int, limit: int = 50) -> list[AuditLog]:
        """List a member's audit entries, newest first."""
        return list(
            db.execute(
                select(AuditLog)
                .where(AuditLog.member_id == member_id)
                .order_by(AuditLog.id.desc())
                .limit(limit)
            ).scalars()
        )


__all__ = ["AuditService", "PAYMENT_ENTITY"]
