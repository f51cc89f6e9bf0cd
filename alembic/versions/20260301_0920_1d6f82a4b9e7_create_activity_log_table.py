"""create_activity_log_table

Revision ID: 1d6f82a4b9e7
Revises: e9a3b58d6c04
Create Date: 2026-03-01 09:20:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = '1d6f82a4b9e7'
down_revision: Union[str, None] = 'e9a3b58d6c04'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIONS = (
    'user_registered', 'user_login',
    'team_created', 'team_updated', 'team_deleted',
    'member_added', 'member_removed', 'member_role_changed',
    'project_created', 'project_updated', 'project_deleted',
    'task_created', 'task_updated', 'task_deleted',
    'task_status_changed', 'task_assigned', 'task_unassigned',
)


def upgrade() -> None:
    values = ", ".join(f"'{a}'" for a in ACTIONS)
    op.execute(f"CREATE TYPE activity_action AS ENUM ({values})")
    # team_id / project_id / task_id are scope tags, not foreign keys
    op.execute("""
        CREATE TABLE activity_log (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            action activity_action NOT NULL,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            team_id UUID,
            project_id UUID,
            task_id UUID,
            description VARCHAR(500) NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_activity_log_user_created ON activity_log(user_id, created_at)")
    op.execute("CREATE INDEX ix_activity_log_team_created ON activity_log(team_id, created_at)")
    op.execute("CREATE INDEX ix_activity_log_project_created ON activity_log(project_id, created_at)")
    op.execute("CREATE INDEX ix_activity_log_task_created ON activity_log(task_id, created_at)")
    op.execute("CREATE INDEX ix_activity_log_created_at ON activity_log(created_at)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS activity_log")
    op.execute("DROP TYPE IF EXISTS activity_action")
