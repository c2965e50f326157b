"""Add ai_suggestion and roadmap columns for AI generated tasks

Revision ID: 002
Revises: 001
Create Date: 2026-10-02

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    # Check existing columns
    columns = {row[1] for row in conn.execute(text("PRAGMA table_info(tasks)")).fetchall()}

    if "ai_suggestion" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN ai_suggestion TEXT"))
    if "roadmap" not in columns:
        conn.execute(text("ALTER TABLE tasks ADD COLUMN roadmap TEXT"))


def downgrade() -> None:
    # SQLite doesn't support DROP COLUMN easily; downgrade is a no-op
    pass
