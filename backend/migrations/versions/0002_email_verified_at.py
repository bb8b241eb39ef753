"""users.email_verified_at – separates "never verified" from "deactivated"

Revision ID: 0002_email_verified_at
Revises: 0001_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_email_verified_at"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.add_column(sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True))

    # Accounts that already signed in have proven their address
    op.execute("UPDATE users SET email_verified_at = last_login WHERE last_login IS NOT NULL")


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.drop_column("email_verified_at")
