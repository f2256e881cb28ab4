"""create bookings and slot locks

Revision ID: 9b3e6d2a8c41
Revises: 4f2a9c1d7e3b
Create Date: 2026-02-02 00:10:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9b3e6d2a8c41'
down_revision = '4f2a9c1d7e3b'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=40), nullable=False),
        sa.Column('booking_status', sa.String(length=20), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['service_id'], ['services.id'], ),
        sa.ForeignKeyConstraint(['slot_id'], ['time_slots.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bookings_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_service_id'), ['service_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_slot_id'), ['slot_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_booking_date'), ['booking_date'], unique=False)
        # one confirmed and one pending row per slot/date
        batch_op.create_index(
            'uq_bookings_slot_date_confirmed', ['slot_id', 'booking_date'], unique=True,
            sqlite_where=sa.text("booking_status = 'confirmed'"),
            postgresql_where=sa.text("booking_status = 'confirmed'"),
        )
        batch_op.create_index(
            'uq_bookings_slot_date_pending', ['slot_id', 'booking_date'], unique=True,
            sqlite_where=sa.text("booking_status = 'pending'"),
            postgresql_where=sa.text("booking_status = 'pending'"),
        )

    op.create_table(
        'slot_locks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('locked_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['slot_id'], ['time_slots.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slot_id', 'booking_date', name='uq_slot_lock_key')
    )


def downgrade():
    op.drop_table('slot_locks')

    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_index('uq_bookings_slot_date_pending')
        batch_op.drop_index('uq_bookings_slot_date_confirmed')
        batch_op.drop_index(batch_op.f('ix_bookings_booking_date'))
        batch_op.drop_index(batch_op.f('ix_bookings_slot_id'))
        batch_op.drop_index(batch_op.f('ix_bookings_service_id'))
        batch_op.drop_index(batch_op.f('ix_bookings_user_id'))

    op.drop_table('bookings')
