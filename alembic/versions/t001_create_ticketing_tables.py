"""create_ticketing_tables

Revision ID: t001_create_ticketing
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 't001_create_ticketing'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the ticketing schema.

    Tables:
    1. events: flat capacity/price used only by events without ticket types
    2. ticket_types: per-tier capacity with a running sold total
    3. promo_codes: globally unique discount codes
    4. registrations: one per (user, event)
    5. ticket_purchases: cart lines of a registration
    6. check_in_audit_entries: append-only check-in history
    """
    op.create_table(
        'events',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('organization_id', sa.String(), nullable=True),
        sa.Column('organizer_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='DRAFT'),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'PUBLISHED', 'CANCELLED', 'COMPLETED')",
            name='check_event_status',
        ),
        sa.CheckConstraint('capacity >= 0', name='check_event_capacity'),
    )
    op.create_index('ix_events_organization_id', 'events', ['organization_id'])
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])

    op.create_table(
        'ticket_types',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('early_bird_price', sa.Integer(), nullable=True),
        sa.Column('early_bird_end_date', sa.DateTime(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('quantity_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_quantity', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.CheckConstraint('quantity_sold >= 0', name='check_quantity_sold_non_negative'),
        sa.CheckConstraint('quantity_sold <= quantity', name='check_quantity_sold_within_cap'),
        sa.CheckConstraint('min_quantity <= max_quantity', name='check_quantity_bounds'),
        sa.CheckConstraint(
            "status IN ('ACTIVE', 'SOLD_OUT', 'INACTIVE')", name='check_ticket_type_status'
        ),
    )
    op.create_index('ix_ticket_types_event_id', 'ticket_types', ['event_id'])

    op.create_table(
        'promo_codes',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('event_id', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.String(length=20), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('max_uses_per_user', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('used_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('valid_from', sa.DateTime(), nullable=True),
        sa.Column('valid_until', sa.DateTime(), nullable=True),
        sa.Column('min_purchase_amount', sa.Integer(), nullable=True),
        sa.Column('applicable_ticket_types', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "discount_type IN ('PERCENTAGE', 'FIXED_AMOUNT', 'EARLY_BIRD')",
            name='check_discount_type',
        ),
        sa.CheckConstraint('discount_value >= 0', name='check_discount_value'),
        sa.CheckConstraint('used_count >= 0', name='check_used_count'),
    )
    op.create_index('ix_promo_codes_code', 'promo_codes', ['code'], unique=True)
    op.create_index('ix_promo_codes_event_id', 'promo_codes', ['event_id'])

    op.create_table(
        'registrations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='CONFIRMED'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('promo_code_used', sa.String(length=50), nullable=True),
        sa.Column('ticket_number', sa.String(length=20), nullable=False),
        sa.Column('qr_code', sa.Text(), nullable=True),
        sa.Column('checked_in', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('checked_in_at', sa.DateTime(), nullable=True),
        sa.Column('checked_in_by', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id']),
        sa.UniqueConstraint('user_id', 'event_id', name='unique_user_event_registration'),
        sa.UniqueConstraint('ticket_number'),
        sa.CheckConstraint(
            "status IN ('CONFIRMED', 'CANCELLED')", name='check_registration_status'
        ),
        sa.CheckConstraint(
            "payment_status IN ('PENDING', 'COMPLETED', 'FAILED', 'REFUNDED')",
            name='check_payment_status',
        ),
        sa.CheckConstraint('final_amount >= 0', name='check_final_amount_non_negative'),
    )
    op.create_index('ix_registrations_event_id', 'registrations', ['event_id'])
    op.create_index('ix_registrations_user_id', 'registrations', ['user_id'])

    op.create_table(
        'ticket_purchases',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('registration_id', sa.String(), nullable=False),
        sa.Column('ticket_type_id', sa.String(), nullable=False),
        sa.Column('promo_code_id', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Integer(), nullable=False),
        sa.Column('discount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ticket_numbers', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ticket_type_id'], ['ticket_types.id']),
        sa.ForeignKeyConstraint(['promo_code_id'], ['promo_codes.id']),
        sa.CheckConstraint('quantity >= 1', name='check_purchase_quantity_positive'),
        sa.CheckConstraint(
            'discount >= 0 AND discount <= subtotal', name='check_purchase_discount'
        ),
    )
    op.create_index('ix_ticket_purchases_registration_id', 'ticket_purchases', ['registration_id'])
    op.create_index('ix_ticket_purchases_ticket_type_id', 'ticket_purchases', ['ticket_type_id'])
    op.create_index('ix_ticket_purchases_promo_code_id', 'ticket_purchases', ['promo_code_id'])

    op.create_table(
        'check_in_audit_entries',
        sa.Column('sequence', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('registration_id', sa.String(), nullable=False),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('actor_id', sa.String(), nullable=False),
        sa.Column('actor_name', sa.String(length=255), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('sequence'),
        sa.ForeignKeyConstraint(['registration_id'], ['registrations.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "action IN ('CHECK_IN', 'CHECK_IN_UNDO', 'BULK_CHECK_IN')",
            name='check_audit_action',
        ),
    )
    op.create_index(
        'ix_check_in_audit_entries_registration_id', 'check_in_audit_entries', ['registration_id']
    )
    op.create_index('ix_check_in_audit_entries_event_id', 'check_in_audit_entries', ['event_id'])


def downgrade() -> None:
    """Drop the ticketing schema"""
    op.drop_table('check_in_audit_entries')
    op.drop_table('ticket_purchases')
    op.drop_table('registrations')
    op.drop_table('promo_codes')
    op.drop_table('ticket_types')
    op.drop_table('events')
