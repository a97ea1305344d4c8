"""Initial studio schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_user_role = sa.Enum("ADMIN", "CLIENT", name="userrole")
_user_status = sa.Enum("ACTIVE", "SUSPENDED", name="userstatus")
_pass_type = sa.Enum(
    "TRIAL", "FIVE_SESSIONS", "TEN_SESSIONS", "MONTHLY", "YEARLY", name="passtype"
)
# session_deductions reuses the type created with the passes table.
_pass_type_ref = postgresql.ENUM(
    "TRIAL",
    "FIVE_SESSIONS",
    "TEN_SESSIONS",
    "MONTHLY",
    "YEARLY",
    name="passtype",
    create_type=False,
)
_pass_status = sa.Enum("ACTIVE", "USED", "EXPIRED", name="passstatus")
_booking_status = sa.Enum("PENDING", "CONFIRMED", "CANCELLED", name="bookingstatus")
_deduction_reason = sa.Enum(
    "BOOKING", "MANUAL", "ADJUSTMENT", "REFUND", name="deductionreason"
)


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
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("role", _user_role, nullable=False),
        sa.Column("status", _user_status, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "available_dates",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False, unique=True),
        sa.Column("time_slots", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_bookings", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_by",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        *_timestamps(),
        sa.CheckConstraint("max_bookings >= 1", name="ck_available_dates_capacity"),
    )

    op.create_table(
        "passes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("pass_type", _pass_type, nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False),
        sa.Column("remaining_sessions", sa.Integer(), nullable=False),
        sa.Column("status", _pass_status, nullable=False),
        sa.Column("expiry_date", sa.Date()),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "trial_holder_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
        ),
        *_timestamps(),
        sa.CheckConstraint("remaining_sessions >= 0", name="ck_passes_remaining_min"),
        sa.CheckConstraint(
            "remaining_sessions <= total_sessions", name="ck_passes_remaining_max"
        ),
    )
    op.create_index("ix_passes_user_id", "passes", ["user_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(length=16), nullable=False),
        sa.Column("appointment_type", sa.String(length=120), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_email", sa.String(length=320), nullable=False),
        sa.Column("client_phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("status", _booking_status, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("requires_pass", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_bookings_date_slot", "bookings", ["date", "time_slot"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])

    op.create_table(
        "session_deductions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "pass_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("passes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "booking_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
        ),
        sa.Column("reason", _deduction_reason, nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("remaining_after", sa.Integer(), nullable=False),
        sa.Column("pass_type", _pass_type_ref, nullable=False),
        sa.Column("notes", sa.String(length=512)),
        sa.Column(
            "deducted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_session_deductions_user_id", "session_deductions", ["user_id"])
    op.create_index("ix_session_deductions_pass_id", "session_deductions", ["pass_id"])
    op.create_index(
        "ix_session_deductions_booking_id", "session_deductions", ["booking_id"]
    )

    op.create_table(
        "purchases",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "pass_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("passes.id", ondelete="SET NULL"),
        ),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", sa.String(length=32), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_purchases_user_id", "purchases", ["user_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=1024)),
        sa.Column("payload", sa.JSON()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_index("ix_purchases_user_id", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("ix_session_deductions_booking_id", table_name="session_deductions")
    op.drop_index("ix_session_deductions_pass_id", table_name="session_deductions")
    op.drop_index("ix_session_deductions_user_id", table_name="session_deductions")
    op.drop_table("session_deductions")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_index("ix_bookings_date_slot", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_passes_user_id", table_name="passes")
    op.drop_table("passes")
    op.drop_table("available_dates")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        _deduction_reason,
        _booking_status,
        _pass_status,
        _pass_type,
        _user_status,
        _user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
