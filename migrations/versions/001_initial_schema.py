"""Initial schema: passports, routes, stations and survey responses.

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
    # ── passports ─────────────────────────────────────────────────────
    op.create_table(
        "passports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("traveler_name", sa.String(120), nullable=False),
        sa.Column("country", sa.String(2), nullable=False, server_default="KR"),
        sa.Column("photo_url", sa.String(512), nullable=True),
        sa.Column("travel_date", sa.Date, nullable=False),
        sa.Column("share_hash", sa.String(64), unique=True, nullable=False),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("metadata", sa.JSON, nullable=False),
    )
    op.create_index("idx_passports_share_hash", "passports", ["share_hash"])
    op.create_index("idx_passports_idempotency", "passports", ["idempotency_key"])

    # ── routes ────────────────────────────────────────────────────────
    op.create_table(
        "routes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "passport_id",
            sa.String(36),
            sa.ForeignKey("passports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_station", sa.String(32), nullable=False),
        sa.Column("end_station", sa.String(32), nullable=False),
        sa.Column("distance", sa.Float, nullable=False),
        sa.Column("co2_train", sa.Float, nullable=False),
        sa.Column("co2_car", sa.Float, nullable=False),
        sa.Column("co2_bus", sa.Float, nullable=False),
        sa.Column("co2_airplane", sa.Float, nullable=False),
        sa.Column("co2_saved", sa.Float, nullable=False),
        sa.Column("sequence_order", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("distance >= 0", name="ck_routes_distance_non_negative"),
        sa.CheckConstraint(
            "sequence_order >= 0", name="ck_routes_sequence_non_negative"
        ),
    )
    op.create_index(
        "idx_routes_passport_sequence", "routes", ["passport_id", "sequence_order"]
    )

    # ── stations ──────────────────────────────────────────────────────
    op.create_table(
        "stations",
        sa.Column("code", sa.String(32), primary_key=True),
        sa.Column("name_ko", sa.String(120), nullable=False),
        sa.Column("name_en", sa.String(120), nullable=False),
        sa.Column("name_ja", sa.String(120), nullable=True),
        sa.Column("name_zh", sa.String(120), nullable=True),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("region", sa.String(32), nullable=True),
        sa.Column(
            "is_primary_hub", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_stations_active", "stations", ["is_active"])

    # ── survey_responses ──────────────────────────────────────────────
    op.create_table(
        "survey_responses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "passport_id",
            sa.String(36),
            sa.ForeignKey("passports.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("responses", sa.JSON, nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("survey_responses")
    op.drop_table("stations")
    op.drop_table("routes")
    op.drop_table("passports")
