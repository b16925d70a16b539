"""Initial booking schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create tours table
    op.create_table('tours',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('total_seats', sa.Integer(), nullable=True),
        sa.Column('seats_available', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('total_seats IS NULL OR total_seats >= 1', name='ck_tour_total_seats_positive'),
        sa.CheckConstraint('seats_available >= 0', name='ck_tour_seats_available_non_negative'),
        sa.CheckConstraint('price >= 0', name='ck_tour_price_non_negative'),
        sa.CheckConstraint(
            'start_date IS NULL OR end_date IS NULL OR end_date >= start_date',
            name='ck_tour_dates_ordered',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tours_title'), 'tours', ['title'], unique=False)

    # Create bookings table; waitlist entries are bookings in status venteliste
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tour_id', sa.Uuid(), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('navn', sa.String(length=255), nullable=False),
        sa.Column('epost', sa.String(length=255), nullable=False),
        sa.Column('telefon', sa.String(length=64), nullable=False),
        sa.Column('dato', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('belop', sa.Integer(), nullable=False),
        sa.Column('betalt_belop', sa.Integer(), nullable=True),
        sa.Column('notater', sa.Text(), nullable=True),
        sa.Column('reservation_expires_at', sa.DateTime(), nullable=True),
        sa.Column('reservation_notified_at', sa.DateTime(), nullable=True),
        sa.Column('waitlist_promoted_at', sa.DateTime(), nullable=True),
        sa.Column('payment_transaction_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('belop >= 0', name='ck_booking_belop_non_negative'),
        sa.CheckConstraint('betalt_belop IS NULL OR betalt_belop >= 0', name='ck_booking_betalt_belop_non_negative'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_tour_id'), 'bookings', ['tour_id'], unique=False)
    op.create_index(op.f('ix_bookings_epost'), 'bookings', ['epost'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_reservation_expires_at'), 'bookings', ['reservation_expires_at'], unique=False)
    op.create_index('ix_bookings_tour_status_created', 'bookings', ['tour_id', 'status', 'created_at'], unique=False)

    # Create participants table
    op.create_table('participants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('telefon', sa.String(length=64), nullable=True),
        sa.Column('sos_navn', sa.String(length=255), nullable=True),
        sa.Column('sos_telefon', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_participants_booking_id'), 'participants', ['booking_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('participants')
    op.drop_table('bookings')
    op.drop_table('tours')
