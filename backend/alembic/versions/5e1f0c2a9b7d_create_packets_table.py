"""create packets table"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5e1f0c2a9b7d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "packets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("frequency", sa.Float(), nullable=True),
    )
    op.create_index(op.f("ix_packets_timestamp"), "packets", ["timestamp"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_packets_timestamp"), table_name="packets")
    op.drop_table("packets")
