"""Initial booking schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "venues",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column(
            "timezone", sa.String(length=64), nullable=False, server_default="UTC"
        ),
        sa.Column(
            "booking_advance_hours",
            sa.Integer(),
            nullable=False,
            server_default="48",
        ),
        sa.Column(
            "cancellation_hours", sa.Integer(), nullable=False, server_default="24"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_venues_id"),
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "venue_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("venues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "requires_staff", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("price", sa.Numeric(10, 2)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_services_id"),
        sa.CheckConstraint(
            "duration_minutes > 0", name="ck_services_duration_positive"
        ),
        sa.CheckConstraint("capacity >= 1", name="ck_services_capacity_positive"),
    )

    op.create_table(
        "staff_members",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "venue_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("venues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_staff_members_id"),
    )

    op.create_table(
        "staff_services",
        sa.Column(
            "staff_member_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("staff_members.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "service_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("services.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "venue_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("venues.id", ondelete="CASCADE"),
        ),
        sa.Column(
            "staff_member_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("staff_members.id", ondelete="CASCADE"),
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_availability_rules_id"),
        sa.CheckConstraint(
            "(venue_id IS NULL) <> (staff_member_id IS NULL)",
            name="ck_availability_rules_single_scope",
        ),
        sa.CheckConstraint(
            "day_of_week BETWEEN 0 AND 6",
            name="ck_availability_rules_day_of_week_range",
        ),
    )
    op.create_index(
        "ix_availability_rules_venue_day",
        "availability_rules",
        ["venue_id", "day_of_week"],
    )
    op.create_index(
        "ix_availability_rules_staff_day",
        "availability_rules",
        ["staff_member_id", "day_of_week"],
    )

    booking_status_enum = sa.Enum(
        "PENDING",
        "CONFIRMED",
        "CANCELLED",
        "COMPLETED",
        "NO_SHOW",
        name="bookingstatus",
    )
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "venue_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("venues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "service_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "staff_member_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("staff_members.id", ondelete="SET NULL"),
        ),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=64)),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("special_requests", sa.Text()),
        sa.Column(
            "status",
            booking_status_enum,
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.String(length=1024)),
        sa.Column("confirmation_sent_at", sa.DateTime(timezone=True)),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True)),
        sa.Column("review_invitation_sent_at", sa.DateTime(timezone=True)),
        sa.Column("booking_token", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_bookings_id"),
        sa.UniqueConstraint("booking_token", name="uq_bookings_booking_token"),
        sa.CheckConstraint("party_size >= 1", name="ck_bookings_party_size_positive"),
    )
    op.create_index("ix_bookings_venue_date", "bookings", ["venue_id", "booking_date"])
    op.create_index(
        "ix_bookings_staff_date", "bookings", ["staff_member_id", "booking_date"]
    )
    op.create_index("ix_bookings_customer_email", "bookings", ["customer_email"])

    audit_action_enum = sa.Enum(
        "STATUS_CHANGE", "CANCEL", "UPDATE", name="auditaction"
    )
    audit_actor_type_enum = sa.Enum(
        "ADMIN", "OWNER", "STAFF", "CUSTOMER", "SYSTEM", name="auditactortype"
    )
    op.create_table(
        "booking_audit_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("booking_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("venue_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("action", audit_action_enum, nullable=False),
        sa.Column("old_status", sa.String(length=32)),
        sa.Column("new_status", sa.String(length=32)),
        sa.Column("reason", sa.String(length=1024)),
        sa.Column("actor_type", audit_actor_type_enum, nullable=False),
        sa.Column("actor_id", sa.String(length=255)),
        sa.Column("customer_identifier", sa.String(length=255)),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("id", name="uq_booking_audit_entries_id"),
    )
    op.create_index(
        "ix_booking_audit_booking_venue",
        "booking_audit_entries",
        ["booking_id", "venue_id"],
    )

    op.create_table(
        "booking_resource_locks",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("venue_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("resource_kind", sa.String(length=16), nullable=False),
        sa.Column("resource_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("id", name="uq_booking_resource_locks_id"),
        sa.UniqueConstraint(
            "venue_id",
            "resource_kind",
            "resource_id",
            "booking_date",
            name="uq_booking_resource_lock_key",
        ),
    )


def downgrade() -> None:
    op.drop_table("booking_resource_locks")
    op.drop_index(
        "ix_booking_audit_booking_venue", table_name="booking_audit_entries"
    )
    op.drop_table("booking_audit_entries")
    op.drop_index("ix_bookings_customer_email", table_name="bookings")
    op.drop_index("ix_bookings_staff_date", table_name="bookings")
    op.drop_index("ix_bookings_venue_date", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_availability_rules_staff_day", table_name="availability_rules")
    op.drop_index("ix_availability_rules_venue_day", table_name="availability_rules")
    op.drop_table("availability_rules")
    op.drop_table("staff_services")
    op.drop_table("staff_members")
    op.drop_table("services")
    op.drop_table("venues")

    bind = op.get_bind()
    sa.Enum(name="auditactortype").drop(bind, checkfirst=True)
    sa.Enum(name="auditaction").drop(bind, checkfirst=True)
    sa.Enum(name="bookingstatus").drop(bind, checkfirst=True)
