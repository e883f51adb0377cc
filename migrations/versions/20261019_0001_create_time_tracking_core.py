"""create time tracking core tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("leader_id", sa.String(length=64), nullable=False),
        _created_at(),
        sa.UniqueConstraint("code", name="uk_teams_code"),
    )

    op.create_table(
        "team_members",
        sa.Column("team_id", sa.BigInteger(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("team_id", "user_id", name="pk_team_members"),
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("team_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("reference", sa.Text(), nullable=False, server_default=""),
        sa.Column("accumulated_time", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("start_timestamp", sa.BigInteger(), nullable=True),
        sa.Column("started_by", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('open', 'reviewed', 'closed', 'deleted')",
            name="ck_tickets_status_valid",
        ),
        sa.CheckConstraint("accumulated_time >= 0", name="ck_tickets_accumulated_time"),
        sa.CheckConstraint(
            "(start_timestamp IS NULL) = (started_by IS NULL)",
            name="ck_tickets_running_owner",
        ),
    )

    op.create_table(
        "clock_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("team_id", sa.BigInteger(), nullable=False),
        sa.Column("start_timestamp", sa.BigInteger(), nullable=False),
        sa.Column("accumulated_time", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("end_time", sa.BigInteger(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.CheckConstraint("accumulated_time >= 0", name="ck_clock_events_accumulated_time"),
    )

    op.create_table(
        "clock_event_tickets",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("clock_event_id", sa.BigInteger(), nullable=False),
        sa.Column("ticket_id", sa.BigInteger(), nullable=False),
        sa.Column("accumulated_time", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("start_timestamp", sa.BigInteger(), nullable=True),
        sa.ForeignKeyConstraint(["clock_event_id"], ["clock_events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["ticket_id"], ["tickets.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("clock_event_id", "ticket_id", name="uk_clock_event_tickets"),
        sa.CheckConstraint(
            "accumulated_time >= 0",
            name="ck_clock_event_tickets_accumulated_time",
        ),
    )

    op.create_index("idx_team_members_user_id", "team_members", ["user_id"], unique=False)
    op.create_index("idx_tickets_team_id", "tickets", ["team_id"], unique=False)
    op.create_index(
        "idx_tickets_running",
        "tickets",
        ["team_id", "started_by"],
        unique=False,
        postgresql_where=sa.text("start_timestamp IS NOT NULL"),
    )
    op.create_index("idx_clock_events_team_id", "clock_events", ["team_id"], unique=False)
    op.execute("CREATE UNIQUE INDEX uk_teams_name_ci ON teams (LOWER(name))")
    op.execute(
        "CREATE UNIQUE INDEX uk_clock_events_open ON clock_events (user_id, team_id) "
        "WHERE end_time IS NULL"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uk_clock_events_open")
    op.execute("DROP INDEX IF EXISTS uk_teams_name_ci")
    op.drop_index("idx_clock_events_team_id", table_name="clock_events")
    op.drop_index("idx_tickets_running", table_name="tickets")
    op.drop_index("idx_tickets_team_id", table_name="tickets")
    op.drop_index("idx_team_members_user_id", table_name="team_members")

    op.drop_table("clock_event_tickets")
    op.drop_table("clock_events")
    op.drop_table("tickets")
    op.drop_table("team_members")
    op.drop_table("teams")
