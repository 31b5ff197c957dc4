"""create users and files

Revision ID: 3c1f0a9d7e21
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from objectgate.models.accounting import POSTGRES_ACCOUNTING_DDL, POSTGRES_ACCOUNTING_DROP

# revision identifiers, used by Alembic.
revision: str = "3c1f0a9d7e21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("total_space_used", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("last_auto_sync_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "files",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("file_key", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_path", sa.String(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("content_size", sa.BigInteger(), nullable=False),
        sa.Column("version", sa.String(), nullable=False),
        sa.Column("is_latest", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_files_file_key", "files", ["file_key"])
    op.create_index("ix_files_file_path", "files", ["file_path"])
    op.create_index("ix_files_added_at", "files", ["added_at"])
    op.create_index("ix_files_user_id_is_latest", "files", ["user_id", "is_latest"])
    op.create_index("ix_files_user_path_version", "files", ["user_id", "file_path", "version"])
    op.create_index(
        "uq_files_user_path_latest",
        "files",
        ["user_id", "file_path"],
        unique=True,
        postgresql_where=sa.text("is_latest"),
    )

    for statement in POSTGRES_ACCOUNTING_DDL:
        op.execute(statement)


def downgrade() -> None:
    """Downgrade schema."""
    for statement in POSTGRES_ACCOUNTING_DROP:
        op.execute(statement)

    op.drop_index("uq_files_user_path_latest", table_name="files")
    op.drop_index("ix_files_user_path_version", table_name="files")
    op.drop_index("ix_files_user_id_is_latest", table_name="files")
    op.drop_index("ix_files_added_at", table_name="files")
    op.drop_index("ix_files_file_path", table_name="files")
    op.drop_index("ix_files_file_key", table_name="files")
    op.drop_table("files")
    op.drop_table("users")
