"""create_tasks_table

Revision ID: e9a3b58d6c04
Revises: c5d7019e4f22
Create Date: 2026-03-01 09:15:00

"""
from typing import Sequence, Union

from alembic import op

revision: str = 'e9a3b58d6c04'
down_revision: Union[str, None] = 'c5d7019e4f22'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE TYPE task_status AS ENUM ('To Do', 'In Progress', 'Review', 'Done')")
    op.execute("CREATE TYPE task_priority AS ENUM ('Low', 'Medium', 'High', 'Urgent')")
    op.execute("""
        CREATE TABLE tasks (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            project_id UUID NOT NULL REFERENCES projects(id),
            title VARCHAR(200) NOT NULL,
            description TEXT,
            assigned_to UUID REFERENCES users(id) ON DELETE SET NULL,
            created_by UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status task_status NOT NULL DEFAULT 'To Do',
            priority task_priority NOT NULL DEFAULT 'Medium',
            due_date TIMESTAMPTZ,
            tags JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_tasks_project_id ON tasks(project_id)")
    op.execute("CREATE INDEX ix_tasks_project_status ON tasks(project_id, status)")
    op.execute("CREATE INDEX ix_tasks_assigned_to ON tasks(assigned_to) WHERE assigned_to IS NOT NULL")
    op.execute("CREATE INDEX ix_tasks_created_by ON tasks(created_by)")
    op.execute("CREATE INDEX ix_tasks_priority ON tasks(priority)")
    op.execute("CREATE INDEX ix_tasks_due_date ON tasks(due_date)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tasks")
    op.execute("DROP TYPE IF EXISTS task_priority")
    op.execute("DROP TYPE IF EXISTS task_status")
