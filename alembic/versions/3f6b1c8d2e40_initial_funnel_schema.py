"""Initial funnel schema: participants, notifications, bookings, survey_responses

Revision ID: 3f6b1c8d2e40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f6b1c8d2e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Participants: one row per email --
    op.create_table(
        'participants',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('age', sa.Float(), nullable=True),
        sa.Column('pre_screen_data', sa.Text(), nullable=True),
        sa.Column('survey_link', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('prescreen_approval_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('booking_time', sa.Text(), nullable=True),
        sa.Column('booking_time_local', sa.Text(), nullable=True),
        sa.Column('cancel_link', sa.Text(), nullable=True),
        sa.Column('reschedule_link', sa.Text(), nullable=True),
        sa.UniqueConstraint('email'),
    )

    # -- Notifications: funnel events awaiting review --
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('email_subject', sa.Text(), nullable=True),
        sa.Column('email_body', sa.Text(), nullable=True),
        sa.Column('data', sa.Text(), nullable=True),
    )
    op.create_index('ix_notifications_type_email', 'notifications', ['type', 'email'])

    # -- Bookings: approved bookings, immutable --
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('participant_id', sa.Integer(), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('booking_time', sa.Text(), nullable=False),
        sa.Column('booking_time_local', sa.Text(), nullable=True),
        sa.Column('cancel_link', sa.Text(), nullable=True),
        sa.Column('reschedule_link', sa.Text(), nullable=True),
        sa.Column('survey_link', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_bookings_participant_id', 'bookings', ['participant_id'])

    # -- Survey responses already turned into notifications --
    op.create_table(
        'survey_responses',
        sa.Column('response_id', sa.Text(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('survey_responses')
    op.drop_index('ix_bookings_participant_id', 'bookings')
    op.drop_table('bookings')
    op.drop_index('ix_notifications_type_email', 'notifications')
    op.drop_table('notifications')
    op.drop_table('participants')
