"""Initial schema: synagogues, schedules, photos, reviews, users, minyan reports

Revision ID: 5c2e9a7b1f30
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c2e9a7b1f30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "synagogues",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(300), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("nusach", sa.String(20), nullable=True),
        sa.Column("rabbi", sa.String(200), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("website", sa.String(300), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("wheelchair_access", sa.Boolean(), server_default=sa.false()),
        sa.Column("parking", sa.Boolean(), server_default=sa.false()),
        sa.Column("air_conditioning", sa.Boolean(), server_default=sa.false()),
        sa.Column("womens_section", sa.Boolean(), server_default=sa.false()),
        sa.Column("mikveh", sa.Boolean(), server_default=sa.false()),
        sa.Column("average_rating", sa.Float(), server_default="0"),
        sa.Column("total_reviews", sa.Integer(), server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_synagogues_nusach", "synagogues", ["nusach"])
    op.create_index("ix_synagogues_lat_lng", "synagogues", ["latitude", "longitude"])

    op.create_table(
        "prayer_schedules",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "synagogue_id",
            sa.String(32),
            sa.ForeignKey("synagogues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("prayer_type", sa.String(20), nullable=False),
        sa.Column("time", sa.String(16), nullable=False),
        sa.UniqueConstraint(
            "synagogue_id", "day_of_week", "prayer_type",
            name="uq_prayer_schedule_slot",
        ),
    )

    op.create_table(
        "synagogue_photos",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "synagogue_id",
            sa.String(32),
            sa.ForeignKey("synagogues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String(500), nullable=False),
        sa.Column("caption", sa.String(300), nullable=True),
        sa.Column("is_primary", sa.Boolean(), server_default=sa.false()),
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "synagogue_id",
            sa.String(32),
            sa.ForeignKey("synagogues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_reviews_synagogue", "reviews", ["synagogue_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("trust_score", sa.Integer(), server_default="50"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "minyan_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "synagogue_id",
            sa.String(32),
            sa.ForeignKey("synagogues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reporter_id", sa.String(64), nullable=False),
        sa.Column("prayer_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("minyan_count", sa.Integer(), nullable=True),
        sa.Column("needs_more", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_minyan_reports_slot_time",
        "minyan_reports",
        ["synagogue_id", "prayer_type", "created_at"],
    )
    op.create_index("ix_minyan_reports_created_at", "minyan_reports", ["created_at"])
    op.create_index(
        "ix_minyan_reports_status_time", "minyan_reports", ["status", "created_at"]
    )

    op.create_table(
        "minyan_report_verifications",
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("minyan_reports.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("verifier_id", sa.String(64), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("minyan_report_verifications")
    op.drop_index("ix_minyan_reports_status_time", table_name="minyan_reports")
    op.drop_index("ix_minyan_reports_created_at", table_name="minyan_reports")
    op.drop_index("ix_minyan_reports_slot_time", table_name="minyan_reports")
    op.drop_table("minyan_reports")
    op.drop_table("users")
    op.drop_index("ix_reviews_synagogue", table_name="reviews")
    op.drop_table("reviews")
    op.drop_table("synagogue_photos")
    op.drop_table("prayer_schedules")
    op.drop_index("ix_synagogues_lat_lng", table_name="synagogues")
    op.drop_index("ix_synagogues_nusach", table_name="synagogues")
    op.drop_table("synagogues")
