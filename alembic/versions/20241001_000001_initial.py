"""Initial schema: saisons, journées, équipes, matchs, joueurs, choix, règles, éliminations.

Revision ID: 20241001_000001
Revises:
Create Date: 2024-10-01 00:00:01
"""

from alembic import op
import sqlalchemy as sa

revision = "20241001_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "season",
        sa.Column("name", sa.String(50), primary_key=True, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "gameweek",
        sa.Column(
            "season_id",
            sa.String(50),
            sa.ForeignKey("season.name", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("week_number", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("deadline", sa.DateTime(), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False),
        sa.Column("elimination_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("week_number BETWEEN 1 AND 38", name="ck_gameweek_week_number"),
        sa.CheckConstraint("elimination_count >= 0", name="ck_gameweek_elimination_count"),
    )

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("short_name", sa.String(50), nullable=True),
        sa.Column("code", sa.String(10), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "fixture",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("season_id", sa.String(50), nullable=False),
        sa.Column("gameweek_number", sa.Integer(), nullable=False),
        sa.Column("home_team_id", sa.Integer(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("away_team_id", sa.Integer(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("kickoff_time", sa.DateTime(), nullable=True),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("external_id", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["season_id", "gameweek_number"],
            ["gameweek.season_id", "gameweek.week_number"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "season_id", "gameweek_number", "home_team_id", "away_team_id", name="uq_fixture"
        ),
    )

    op.create_table(
        "season_participation",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "season_id", sa.String(50), sa.ForeignKey("season.name", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("requested_at", sa.DateTime(), nullable=False),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("approved_by", sa.Integer(), sa.ForeignKey("app_user.id"), nullable=True),
        sa.UniqueConstraint("user_id", "season_id", name="uq_season_participation"),
    )

    op.create_table(
        "pick",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("season_id", sa.String(50), nullable=False),
        sa.Column("gameweek_number", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("goals_for", sa.Integer(), nullable=False),
        sa.Column("goals_against", sa.Integer(), nullable=False),
        sa.Column("is_auto_assigned", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["season_id", "gameweek_number"],
            ["gameweek.season_id", "gameweek.week_number"],
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", "season_id", "gameweek_number", name="uq_pick"),
    )
    op.create_index("ix_pick_season_week", "pick", ["season_id", "gameweek_number"])

    op.create_table(
        "pick_rule",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "season_id", sa.String(50), sa.ForeignKey("season.name", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("half", sa.Integer(), nullable=False),
        sa.Column("max_times_team_can_be_picked", sa.Integer(), nullable=False),
        sa.Column("max_times_opposition_can_be_targeted", sa.Integer(), nullable=False),
        sa.UniqueConstraint("season_id", "half", name="uq_pick_rule"),
        sa.CheckConstraint("half IN (1, 2)", name="ck_pick_rule_half"),
    )

    op.create_table(
        "user_elimination",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "season_id", sa.String(50), sa.ForeignKey("season.name", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("gameweek_number", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("eliminated_at", sa.DateTime(), nullable=False),
        sa.Column("eliminated_by", sa.Integer(), sa.ForeignKey("app_user.id"), nullable=True),
        sa.UniqueConstraint("user_id", "season_id", name="uq_user_elimination"),
    )
    op.create_index(
        "ix_user_elimination_season_week", "user_elimination", ["season_id", "gameweek_number"]
    )


def downgrade() -> None:
    op.drop_index("ix_user_elimination_season_week", table_name="user_elimination")
    op.drop_table("user_elimination")
    op.drop_table("pick_rule")
    op.drop_index("ix_pick_season_week", table_name="pick")
    op.drop_table("pick")
    op.drop_table("season_participation")
    op.drop_table("fixture")
    op.drop_table("app_user")
    op.drop_table("team")
    op.drop_table("gameweek")
    op.drop_table("season")
