"""Create affiliate program tables

Revision ID: 20261018_000001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Affiliate accounts
    op.create_table(
        'affiliates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, server_default=''),
        sa.Column('display_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(5, 2), nullable=True),
        sa.Column('total_clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_referrals', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_commission', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('pending_commission', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('approved_commission', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('paid_commission', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('bank_info', postgresql.JSONB(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_clicks >= 0', name='check_affiliate_clicks_non_negative'),
        sa.CheckConstraint('total_referrals >= 0', name='check_affiliate_referrals_non_negative'),
        sa.CheckConstraint('pending_commission >= 0', name='check_affiliate_pending_non_negative'),
        sa.CheckConstraint('approved_commission >= 0', name='check_affiliate_approved_non_negative'),
        sa.CheckConstraint('paid_commission >= 0', name='check_affiliate_paid_non_negative'),
        sa.CheckConstraint(
            'commission_rate IS NULL OR (commission_rate >= 0 AND commission_rate <= 100)',
            name='check_affiliate_rate_range',
        ),
    )
    op.create_index('ix_affiliates_user_id', 'affiliates', ['user_id'], unique=True)
    op.create_index('ix_affiliates_referral_code', 'affiliates', ['referral_code'], unique=True)
    op.create_index('ix_affiliates_created_at', 'affiliates', ['created_at'])

    # Program settings singleton
    op.create_table(
        'affiliate_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('default_commission_rate', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('min_payout_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('payout_methods', postgresql.JSONB(), nullable=False),
        sa.Column('terms_and_conditions', sa.Text(), nullable=False, server_default=''),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'default_commission_rate >= 0 AND default_commission_rate <= 100',
            name='check_settings_rate_range',
        ),
        sa.CheckConstraint('min_payout_amount >= 0', name='check_settings_min_payout_non_negative'),
    )
    op.create_index('ix_affiliate_settings_created_at', 'affiliate_settings', ['created_at'])

    # Referral events
    op.create_table(
        'affiliate_referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('visitor_id', sa.String(128), nullable=True),
        sa.Column('referred_user_id', sa.String(128), nullable=True),
        sa.Column('referred_user_email', sa.String(255), nullable=True),
        sa.Column('referred_user_name', sa.String(255), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('order_total', sa.DECIMAL(18, 2), nullable=True),
        sa.Column('commission_amount', sa.DECIMAL(18, 2), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='clicked'),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('registered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ordered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(128), nullable=True),
        sa.Column('rejected_by', sa.String(128), nullable=True),
        sa.Column('paid_by', sa.String(128), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['referrer_id'], ['affiliates.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referral_code', 'visitor_id', name='uq_referral_code_visitor'),
        sa.UniqueConstraint('referral_code', 'referred_user_id', name='uq_referral_code_referred_user'),
    )
    op.create_index('ix_affiliate_referrals_referral_code', 'affiliate_referrals', ['referral_code'])
    op.create_index('ix_affiliate_referrals_referrer_id', 'affiliate_referrals', ['referrer_id'])
    op.create_index('ix_affiliate_referrals_referred_user_id', 'affiliate_referrals', ['referred_user_id'])
    op.create_index('ix_affiliate_referrals_order_id', 'affiliate_referrals', ['order_id'])
    op.create_index('ix_affiliate_referrals_status', 'affiliate_referrals', ['status'])
    op.create_index('ix_affiliate_referrals_created_at', 'affiliate_referrals', ['created_at'])
    op.create_index('idx_referral_referrer_status', 'affiliate_referrals', ['referrer_id', 'status'])

    # Payouts
    op.create_table(
        'affiliate_payouts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('requested_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('method', sa.String(100), nullable=False),
        sa.Column('bank_info', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by', sa.String(128), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.String(128), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.String(128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='check_payout_amount_positive'),
        sa.CheckConstraint('amount <= requested_amount', name='check_payout_amount_not_exceeds_requested'),
    )
    op.create_index('ix_affiliate_payouts_affiliate_id', 'affiliate_payouts', ['affiliate_id'])
    op.create_index('ix_affiliate_payouts_status', 'affiliate_payouts', ['status'])
    op.create_index('ix_affiliate_payouts_created_at', 'affiliate_payouts', ['created_at'])

    # Commissions
    op.create_table(
        'affiliate_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('referral_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('payout_id', sa.Integer(), nullable=True),
        sa.Column('order_total', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('commission_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(128), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.String(128), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by', sa.String(128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referral_id'], ['affiliate_referrals.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['payout_id'], ['affiliate_payouts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('commission_amount >= 0', name='check_commission_amount_non_negative'),
        sa.CheckConstraint('order_total >= 0', name='check_commission_order_total_non_negative'),
    )
    op.create_index('ix_affiliate_commissions_order_id', 'affiliate_commissions', ['order_id'], unique=True)
    op.create_index('ix_affiliate_commissions_affiliate_id', 'affiliate_commissions', ['affiliate_id'])
    op.create_index('ix_affiliate_commissions_referral_id', 'affiliate_commissions', ['referral_id'])
    op.create_index('ix_affiliate_commissions_payout_id', 'affiliate_commissions', ['payout_id'])
    op.create_index('ix_affiliate_commissions_status', 'affiliate_commissions', ['status'])
    op.create_index('ix_affiliate_commissions_created_at', 'affiliate_commissions', ['created_at'])
    op.create_index('idx_commission_affiliate_status', 'affiliate_commissions', ['affiliate_id', 'status'])

    # Orders (attribution fields only)
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('visitor_id', sa.String(128), nullable=True),
        sa.Column('total', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=True),
        sa.Column('referral_code', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total >= 0', name='check_order_total_non_negative'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_affiliate_id', 'orders', ['affiliate_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_orders_created_at', 'orders')
    op.drop_index('ix_orders_affiliate_id', 'orders')
    op.drop_index('ix_orders_user_id', 'orders')
    op.drop_table('orders')

    op.drop_index('idx_commission_affiliate_status', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_created_at', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_status', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_payout_id', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_referral_id', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_affiliate_id', 'affiliate_commissions')
    op.drop_index('ix_affiliate_commissions_order_id', 'affiliate_commissions')
    op.drop_table('affiliate_commissions')

    op.drop_index('ix_affiliate_payouts_created_at', 'affiliate_payouts')
    op.drop_index('ix_affiliate_payouts_status', 'affiliate_payouts')
    op.drop_index('ix_affiliate_payouts_affiliate_id', 'affiliate_payouts')
    op.drop_table('affiliate_payouts')

    op.drop_index('idx_referral_referrer_status', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_created_at', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_status', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_order_id', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_referred_user_id', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_referrer_id', 'affiliate_referrals')
    op.drop_index('ix_affiliate_referrals_referral_code', 'affiliate_referrals')
    op.drop_table('affiliate_referrals')

    op.drop_index('ix_affiliate_settings_created_at', 'affiliate_settings')
    op.drop_table('affiliate_settings')

    op.drop_index('ix_affiliates_created_at', 'affiliates')
    op.drop_index('ix_affiliates_referral_code', 'affiliates')
    op.drop_index('ix_affiliates_user_id', 'affiliates')
    op.drop_table('affiliates')
