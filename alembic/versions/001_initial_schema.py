"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB(astext_type=sa.Text())


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── players ──
    op.create_table(
        "players",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("token", sa.String(255), unique=True, nullable=False),
        sa.Column("level", sa.Integer, server_default="1"),
        sa.Column("world_x", sa.Float, server_default="0"),
        sa.Column("world_y", sa.Float, server_default="0"),
        sa.Column("home_x", sa.Float, nullable=True),
        sa.Column("home_y", sa.Float, nullable=True),
        *_timestamps(),
    )

    # ── items / inventory ──
    op.create_table(
        "items",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(128), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("item_type", sa.String(32), server_default="resource"),
        sa.Column("rarity", sa.String(32), server_default="common"),
        *_timestamps(),
    )
    op.create_table(
        "inventory",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("player_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("item_id", UUID, sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Integer, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "item_id", name="uq_inventory_player_item"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
    )

    # ── resource nodes ──
    op.create_table(
        "resource_node_types",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(128), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("required_tool_type", sa.String(32), nullable=True),
        sa.Column("base_gather_time", sa.Integer, server_default="30"),
        sa.Column("respawn_minutes", sa.Integer, server_default="30"),
        sa.Column("min_level", sa.Integer, server_default="1"),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        "node_drops",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("node_type_id", UUID, sa.ForeignKey("resource_node_types.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", UUID, sa.ForeignKey("items.id"), nullable=False),
        sa.Column("drop_chance", sa.Float, server_default="100"),
        sa.Column("min_quantity", sa.Integer, server_default="1"),
        sa.Column("max_quantity", sa.Integer, server_default="1"),
        sa.Column("min_tool_tier", sa.Integer, server_default="0"),
        sa.Column("is_rare", sa.Boolean, server_default=sa.false()),
    )
    op.create_table(
        "resource_nodes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("node_type_id", UUID, sa.ForeignKey("resource_node_types.id", ondelete="CASCADE"), nullable=False),
        sa.Column("world_x", sa.Float, nullable=False),
        sa.Column("world_y", sa.Float, nullable=False),
        sa.Column("current_amount", sa.Integer, server_default="3"),
        sa.Column("max_amount", sa.Integer, server_default="3"),
        sa.Column("is_depleted", sa.Boolean, server_default=sa.false()),
        sa.Column("depleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_gathered_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_resource_nodes_position", "resource_nodes", ["world_x", "world_y"])

    # ── tools ──
    op.create_table(
        "tool_types",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(128), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("tier", sa.Integer, server_default="1"),
        sa.Column("speed_bonus", sa.Float, server_default="1"),
        sa.Column("rare_drop_bonus", sa.Float, server_default="0"),
        sa.Column("efficiency_bonus", sa.Float, server_default="0"),
        sa.Column("durability", sa.Integer, server_default="100"),
        *_timestamps(),
    )
    op.create_table(
        "player_tools",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("player_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("tool_type_id", UUID, sa.ForeignKey("tool_types.id"), nullable=False),
        sa.Column("current_durability", sa.Integer, server_default="100"),
        *_timestamps(),
    )

    # ── buildings ──
    op.create_table(
        "buildings",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(128), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("max_level", sa.Integer, server_default="5"),
        sa.Column("build_duration_minutes", sa.Integer, server_default="5"),
        sa.Column("upgrade_duration_minutes", sa.Integer, server_default="3"),
        *_timestamps(),
    )
    op.create_table(
        "building_requirements",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("building_id", UUID, sa.ForeignKey("buildings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", UUID, sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("requirement_type", sa.String(16), server_default="build"),
        sa.Column("level", sa.Integer, server_default="0"),
    )
    op.create_table(
        "player_buildings",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("player_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("building_id", UUID, sa.ForeignKey("buildings.id"), nullable=False),
        sa.Column("level", sa.Integer, server_default="1"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "building_id", name="uq_player_building"),
    )

    # ── crafting ──
    op.create_table(
        "equipment_types",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(128), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("slot", sa.String(32), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "equipment_recipes",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("equipment_type_id", UUID, sa.ForeignKey("equipment_types.id", ondelete="CASCADE"), nullable=False),
        sa.Column("profession", sa.String(32), nullable=False),
        sa.Column("required_profession_level", sa.Integer, server_default="1"),
        sa.Column("experience_reward", sa.Integer, server_default="10"),
        sa.Column("craft_time", sa.Integer, server_default="60"),
        sa.Column("station_building_id", UUID, sa.ForeignKey("buildings.id"), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "recipe_materials",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("recipe_id", UUID, sa.ForeignKey("equipment_recipes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", UUID, sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Integer, server_default="1"),
    )
    op.create_table(
        "player_equipment",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("player_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("equipment_type_id", UUID, sa.ForeignKey("equipment_types.id"), nullable=False),
        sa.Column("quality", sa.String(16), server_default="normal"),
        sa.Column("quality_bonus", sa.Float, server_default="1"),
        sa.Column("source_job_id", UUID, unique=True, nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "profession_stats",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("player_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("profession", sa.String(32), nullable=False),
        sa.Column("level", sa.Integer, server_default="1"),
        sa.Column("experience", sa.Integer, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("player_id", "profession", name="uq_profession_player"),
    )

    # ── jobs ──
    op.create_table(
        "jobs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("owner_id", UUID, sa.ForeignKey("players.id"), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), server_default="active"),
        sa.Column("target", JSONB, server_default="{}"),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("finish_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_seconds", sa.Integer, nullable=False),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remaining_seconds", sa.Integer, nullable=True),
        sa.Column("outcome", JSONB, nullable=True),
        sa.Column("consumed_inputs", JSONB, server_default="{}"),
        sa.Column("result", JSONB, nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trace_id", UUID, nullable=False, server_default=sa.text("gen_random_uuid()")),
        *_timestamps(),
    )
    op.create_index("ix_jobs_owner_id", "jobs", ["owner_id"])

    # One row per owner: the primary key is the one-job-at-a-time lock
    op.create_table(
        "active_jobs",
        sa.Column("owner_id", UUID, sa.ForeignKey("players.id"), primary_key=True),
        sa.Column("job_id", UUID, unique=True, nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── events ──
    op.create_table(
        "events",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("event_type", sa.String(128), nullable=False),
        sa.Column("level", sa.String(16), server_default="info"),
        sa.Column("source", sa.String(128), nullable=True),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("metadata", JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_event_type", "events", ["event_type"])


def downgrade() -> None:
    op.drop_table("events")
    op.drop_table("active_jobs")
    op.drop_table("jobs")
    op.drop_table("profession_stats")
    op.drop_table("player_equipment")
    op.drop_table("recipe_materials")
    op.drop_table("equipment_recipes")
    op.drop_table("equipment_types")
    op.drop_table("player_buildings")
    op.drop_table("building_requirements")
    op.drop_table("buildings")
    op.drop_table("player_tools")
    op.drop_table("tool_types")
    op.drop_table("resource_nodes")
    op.drop_table("node_drops")
    op.drop_table("resource_node_types")
    op.drop_table("inventory")
    op.drop_table("items")
    op.drop_table("players")
