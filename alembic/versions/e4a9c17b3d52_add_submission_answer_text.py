"""add submission answer_text

Revision ID: e4a9c17b3d52
Revises: b51d08e6c2a7
Create Date: 2026-10-19 11:02:47.553180

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'e4a9c17b3d52'
down_revision: Union[str, Sequence[str], None] = 'b51d08e6c2a7'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table("submissions") as batch_op:
        batch_op.add_column(sa.Column("answer_text", sa.Text(), nullable=True))

    # rows submitted before this column existed graded their text content
    op.execute("UPDATE submissions SET answer_text = content_text WHERE answer_text IS NULL")


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("submissions") as batch_op:
        batch_op.drop_column("answer_text")
