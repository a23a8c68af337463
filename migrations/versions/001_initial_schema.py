"""Initial schema: users, rides and bookings with seat-inventory constraints.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("uid", sa.String(128), primary_key=True),
        sa.Column("display_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("gender", sa.String(20), nullable=False, server_default=""),
        sa.Column("rides_offered", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rides_joined", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_savings", sa.Float, nullable=False, server_default="0"),
        sa.Column("co2_saved", sa.Float, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("driver_id", sa.String(128), nullable=False),
        sa.Column("pickup", sa.String(255), nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("destination_lat", sa.Float, nullable=False),
        sa.Column("destination_lng", sa.Float, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("total_seats", sa.Integer, nullable=False),
        sa.Column("available_seats", sa.Integer, nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="upcoming"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "gender_preference", sa.String(20), nullable=False, server_default="all"
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("total_seats BETWEEN 1 AND 6", name="ck_rides_total_seats"),
        sa.CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_available_seats",
        ),
        sa.CheckConstraint("price > 0", name="ck_rides_price"),
        sa.CheckConstraint(
            "status IN ('upcoming', 'completed', 'cancelled')", name="ridestatus"
        ),
        sa.CheckConstraint(
            "gender_preference IN ('all', 'female_only', 'male_only')",
            name="genderpreference",
        ),
    )
    op.create_index("idx_rides_status_date", "rides", ["status", "date"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "ride_id", sa.String(32), sa.ForeignKey("rides.id"), nullable=False
        ),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("driver_id", sa.String(128), nullable=False),
        sa.Column("seats", sa.Integer, nullable=False, server_default="1"),
        sa.Column("total_price", sa.Float, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("seats >= 1", name="ck_bookings_seats"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="bookingstatus",
        ),
    )
    op.create_index("idx_bookings_ride", "bookings", ["ride_id"])
    op.create_index("idx_bookings_user", "bookings", ["user_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("rides")
    op.drop_table("users")
