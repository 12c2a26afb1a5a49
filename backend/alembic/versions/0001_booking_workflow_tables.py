"""
Create booking, rider negotiation, contract, notification and outbox tables.

Revision ID: 0001_booking_workflow_tables
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from typing import Union

# revision identifiers, used by Alembic.
revision: str = '0001_booking_workflow_tables'
down_revision: Union[str, None] = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('organization_name', sa.String(), nullable=True),
        sa.Column('role', sa.Enum('ARTIST', 'VENUE', 'ADMIN', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'rider_templates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('genre', sa.String(length=100), nullable=True),
        sa.Column('performance_type', sa.String(length=100), nullable=True),
        sa.Column('performance_duration', sa.Integer(), nullable=True),
        sa.Column('setup_time_required', sa.Integer(), nullable=True),
        sa.Column('soundcheck_time_required', sa.Integer(), nullable=True),
        sa.Column('teardown_time_required', sa.Integer(), nullable=True),
        sa.Column('number_of_performers', sa.Integer(), nullable=True),
        sa.Column('pa_system_required', sa.Boolean(), nullable=True),
        sa.Column('microphone_type', sa.String(length=100), nullable=True),
        sa.Column('monitor_mix_required', sa.Boolean(), nullable=True),
        sa.Column('di_boxes_needed', sa.Integer(), nullable=True),
        sa.Column('lighting_required', sa.Boolean(), nullable=True),
        sa.Column('lighting_type', sa.String(length=100), nullable=True),
        sa.Column('stage_dimensions', sa.String(length=100), nullable=True),
        sa.Column('backdrop_required', sa.Boolean(), nullable=True),
        sa.Column('power_requirements', sa.Text(), nullable=True),
        sa.Column('dressing_room_required', sa.Boolean(), nullable=True),
        sa.Column('catering_provided', sa.Boolean(), nullable=True),
        sa.Column('dietary_restrictions', sa.JSON(), nullable=True),
        sa.Column('beverages', sa.JSON(), nullable=True),
        sa.Column('accommodation_provided', sa.Boolean(), nullable=True),
        sa.Column('number_of_rooms', sa.Integer(), nullable=True),
        sa.Column('parking_required', sa.Boolean(), nullable=True),
        sa.Column('travel_provided', sa.Boolean(), nullable=True),
        sa.Column('deposit_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('payment_method', sa.String(length=100), nullable=True),
        sa.Column('cancellation_policy', sa.Text(), nullable=True),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('additional_notes', sa.Text(), nullable=True),
        sa.Column('extras', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_rider_templates_id', 'rider_templates', ['id'])
    op.create_index('ix_rider_templates_artist_id', 'rider_templates', ['artist_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('venue_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('event_time', sa.String(length=50), nullable=True),
        sa.Column('venue_name', sa.String(length=255), nullable=False),
        sa.Column('venue_address', sa.Text(), nullable=True),
        sa.Column('total_fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('deposit_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('event_details', sa.Text(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('pending', 'confirmed', 'cancelled', 'completed', name='bookingstatus'),
            nullable=False,
        ),
        sa.Column('status_changed_at', sa.DateTime(), nullable=True),
        sa.Column(
            'rider_template_id',
            sa.Integer(),
            sa.ForeignKey('rider_templates.id', ondelete='SET NULL'),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_artist_id', 'bookings', ['artist_id'])
    op.create_index('ix_bookings_venue_id', 'bookings', ['venue_id'])
    op.create_index('ix_bookings_event_date', 'bookings', ['event_date'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])

    op.create_table(
        'rider_acknowledgments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column(
            'rider_template_id',
            sa.Integer(),
            sa.ForeignKey('rider_templates.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('venue_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'status',
            sa.Enum(
                'pending',
                'acknowledged',
                'modifications_proposed',
                'accepted',
                'rejected',
                name='rideracknowledgmentstatus',
            ),
            nullable=False,
        ),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_rider_acknowledgments_id', 'rider_acknowledgments', ['id'])
    # One acknowledgment per booking
    op.create_index('ix_rider_acknowledgments_booking_id', 'rider_acknowledgments', ['booking_id'], unique=True)
    op.create_index('ix_rider_acknowledgments_status', 'rider_acknowledgments', ['status'])

    op.create_table(
        'rider_modifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'acknowledgment_id',
            sa.Integer(),
            sa.ForeignKey('rider_acknowledgments.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('field_name', sa.String(length=100), nullable=False),
        sa.Column('original_value', sa.JSON(), nullable=True),
        sa.Column('proposed_value', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('proposed_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('proposed_by_party', sa.String(length=20), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'accepted', 'rejected', 'countered', name='modificationstatus'),
            nullable=False,
        ),
        sa.Column('proposed_at', sa.DateTime(), nullable=False),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('acknowledgment_id', 'sequence', name='uq_rider_modification_sequence'),
    )
    op.create_index('ix_rider_modifications_id', 'rider_modifications', ['id'])
    op.create_index('ix_rider_modifications_acknowledgment_id', 'rider_modifications', ['acknowledgment_id'])

    op.create_table(
        'contracts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id'), nullable=False),
        sa.Column('artist_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('venue_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'rider_template_id',
            sa.Integer(),
            sa.ForeignKey('rider_templates.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('contract_type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('pdf_data', sa.LargeBinary(), nullable=True),
        sa.Column(
            'status',
            sa.Enum(
                'draft',
                'pending_signatures',
                'signed',
                'rejected',
                'cancelled',
                name='contractstatus',
            ),
            nullable=False,
        ),
        sa.Column('artist_signed_at', sa.DateTime(), nullable=True),
        sa.Column('venue_signed_at', sa.DateTime(), nullable=True),
        sa.Column('artist_signature', sa.Text(), nullable=True),
        sa.Column('venue_signature', sa.Text(), nullable=True),
        sa.Column('rejected_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('lock_version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('booking_id', 'version', name='uq_contract_booking_version'),
    )
    op.create_index('ix_contracts_id', 'contracts', ['id'])
    op.create_index('ix_contracts_booking_id', 'contracts', ['booking_id'])
    op.create_index('ix_contracts_status', 'contracts', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column(
            'type',
            sa.Enum(
                'BOOKING_CREATED',
                'BOOKING_STATUS_UPDATED',
                'RIDER_SHARED',
                'RIDER_ACKNOWLEDGED',
                'RIDER_MODIFICATIONS_PROPOSED',
                'RIDER_RESOLVED',
                'RIDER_REMINDER',
                'CONTRACT_GENERATED',
                'CONTRACT_SENT',
                'CONTRACT_SIGNED',
                'CONTRACT_REJECTED',
                'CONTRACT_CANCELLED',
                name='notificationtype',
            ),
            nullable=False,
        ),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('link', sa.String(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'outbox_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('topic', sa.String(length=64), nullable=False),
        sa.Column('payload_json', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('due_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_outbox_events_id', 'outbox_events', ['id'])
    op.create_index('ix_outbox_events_topic', 'outbox_events', ['topic'])
    op.create_index('ix_outbox_events_delivered_at', 'outbox_events', ['delivered_at'])
    op.create_index('ix_outbox_events_due_at', 'outbox_events', ['due_at'])


def downgrade() -> None:
    op.drop_table('outbox_events')
    op.drop_table('notifications')
    op.drop_table('contracts')
    op.drop_table('rider_modifications')
    op.drop_table('rider_acknowledgments')
    op.drop_table('bookings')
    op.drop_table('rider_templates')
    op.drop_table('users')
