"""create tenant_migrations table

Revision ID: 8e52b7c4d610
Revises: 3c1f0a9d7b24
Create Date: 2026-09-28 09:30:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "8e52b7c4d610"
down_revision: Union[str, Sequence[str], None] = "3c1f0a9d7b24"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "tenant_migrations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("version", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        # Migration history goes with its tenant
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "tenant_id", "version", name="uq_tenant_migrations_tenant_version"
        ),
    )
    op.create_index(
        "ix_tenant_migrations_tenant_id", "tenant_migrations", ["tenant_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_tenant_migrations_tenant_id", table_name="tenant_migrations")
    op.drop_table("tenant_migrations")
