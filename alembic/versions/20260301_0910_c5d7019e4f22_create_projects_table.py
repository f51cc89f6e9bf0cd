"""create_projects_table

Revision ID: c5d7019e4f22
Revises: 8b24e6f0c3a1
Create Date: 2026-03-01 09:10:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = 'c5d7019e4f22'
down_revision: Union[str, None] = '8b24e6f0c3a1'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "CREATE TYPE project_status AS ENUM "
        "('Planning', 'Active', 'On Hold', 'Completed', 'Cancelled')"
    )
    op.execute("""
        CREATE TABLE projects (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            team_id UUID NOT NULL REFERENCES teams(id),
            name VARCHAR(100) NOT NULL,
            description VARCHAR(1000),
            status project_status NOT NULL DEFAULT 'Planning',
            created_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            start_date TIMESTAMPTZ,
            end_date TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_projects_date_order
                CHECK (start_date IS NULL OR end_date IS NULL OR end_date >= start_date)
        )
    """)
    op.execute("CREATE INDEX ix_projects_team_id ON projects(team_id)")
    op.execute("CREATE INDEX ix_projects_status ON projects(status)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS projects")
    op.execute("DROP TYPE IF EXISTS project_status")
