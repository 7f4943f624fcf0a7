"""add ai grading logs

Revision ID: b51d08e6c2a7
Revises: 7c2e41a9d3f0
Create Date: 2026-10-14 16:40:05.902331

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b51d08e6c2a7'
down_revision: Union[str, Sequence[str], None] = '7c2e41a9d3f0'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "ai_grading_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("assignment_title", sa.String(255), nullable=False),
        sa.Column("student_answer", sa.Text(), nullable=False),
        sa.Column("rubric_context", sa.Text(), nullable=True),
        sa.Column("ai_score", sa.Integer(), nullable=True),
        sa.Column("ai_feedback", sa.Text(), nullable=True),
        sa.Column("model_used", sa.String(100), nullable=False),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_ai_grading_logs_id", "ai_grading_logs", ["id"])
    op.create_index("ix_ai_grading_logs_user_id", "ai_grading_logs", ["user_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_ai_grading_logs_user_id", table_name="ai_grading_logs")
    op.drop_index("ix_ai_grading_logs_id", table_name="ai_grading_logs")
    op.drop_table("ai_grading_logs")
