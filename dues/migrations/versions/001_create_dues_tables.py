"""Create dues tables.

Revision ID: 001_create_dues_tables
Revises: None
Create Date: 2025-11-09 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_dues_tables'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create members, vouchers, membership_payments and audit_logs."""
    # Membership register (owned by membership CRUD, read by the engine)
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column('member_no', sa.String(50), nullable=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('join_date', sa.Date(), nullable=True),
        sa.Column('leave_date', sa.Date(), nullable=True),
        sa.Column('next_due_date', sa.Date(), nullable=True),
        sa.Column('contribution_amount', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('contribution_interval', sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_members'),
        sa.UniqueConstraint('member_no', name='uq_members_member_no'),
    )
    op.create_index('idx_member_name', 'members', ['name'])
    op.create_index('idx_member_status', 'members', ['status'])

    # Accounting vouchers (external store, read-only here)
    op.create_table(
        'vouchers',
        sa.Column('id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column('voucher_no', sa.String(50), nullable=False),
        sa.Column('voucher_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('counterparty', sa.String(255), nullable=True),
        sa.Column('gross_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_vouchers'),
        sa.UniqueConstraint('voucher_no', name='uq_vouchers_voucher_no'),
    )
    op.create_index('ix_vouchers_voucher_date', 'vouchers', ['voucher_date'])
    op.create_index('idx_voucher_date_amount', 'vouchers', ['voucher_date', 'gross_amount'])

    # One payment row per member and period; voucher_id is a weak link (no FK)
    op.create_table(
        'membership_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('period_key', sa.String(10), nullable=False),
        sa.Column('interval', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('date_paid', sa.DateTime(timezone=True), nullable=False),
        sa.Column('voucher_id', sa.Integer(), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ['member_id'], ['members.id'],
            name='fk_membership_payments_member_id_members', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_membership_payments'),
        sa.UniqueConstraint('member_id', 'period_key', name='uq_membership_payment_member_period'),
    )
    op.create_index('idx_mp_member_period', 'membership_payments', ['member_id', 'period_key'])
    op.create_index('idx_mp_date_paid', 'membership_payments', ['date_paid'])
    op.create_index('ix_membership_payments_voucher_id', 'membership_payments', ['voucher_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_audit_logs'),
    )
    op.create_index('ix_audit_logs_member_id', 'audit_logs', ['member_id'])
    op.create_index('idx_audit_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Drop dues tables."""
    op.drop_index('idx_audit_entity', table_name='audit_logs')
    op.drop_index('ix_audit_logs_member_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_membership_payments_voucher_id', table_name='membership_payments')
    op.drop_index('idx_mp_date_paid', table_name='membership_payments')
    op.drop_index('idx_mp_member_period', table_name='membership_payments')
    op.drop_table('membership_payments')
    op.drop_index('idx_voucher_date_amount', table_name='vouchers')
    op.drop_index('ix_vouchers_voucher_date', table_name='vouchers')
    op.drop_table('vouchers')
    op.drop_index('idx_member_status', table_name='members')
    op.drop_index('idx_member_name', table_name='members')
    op.drop_table('members')
