"""create_teams_tables

Revision ID: 8b24e6f0c3a1
Revises: 3f1a9c2d7b10
Create Date: 2026-03-01 09:05:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = '8b24e6f0c3a1'
down_revision: Union[str, None] = '3f1a9c2d7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE teams (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(100) NOT NULL,
            description VARCHAR(500),
            created_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_teams_name ON teams(name)")
    op.execute("CREATE INDEX ix_teams_created_by ON teams(created_by)")

    op.execute("CREATE TYPE team_role AS ENUM ('admin', 'member')")
    op.execute("""
        CREATE TABLE team_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            team_id UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role team_role NOT NULL DEFAULT 'member',
            joined_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_team_members_team_user UNIQUE (team_id, user_id)
        )
    """)
    op.execute("CREATE INDEX ix_team_members_team_id ON team_members(team_id)")
    op.execute("CREATE INDEX ix_team_members_user_id ON team_members(user_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS team_members")
    op.execute("DROP TYPE IF EXISTS team_role")
    op.execute("DROP TABLE IF EXISTS teams")
