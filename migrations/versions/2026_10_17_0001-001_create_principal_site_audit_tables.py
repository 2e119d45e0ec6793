"""Create users, sites and audit_logs tables

Adds:
- users: local principal mirror with role and explicit site grants
- sites: registered target applications (soft delete via is_active)
- audit_logs: append-only audit trail

Revision ID: 001
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


site_category = sa.Enum("PREMIUM", "STANDARD", "ADMIN", name="sitecategory")


def upgrade() -> None:
    # --- Principals ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True, comment="Identity provider user ID"),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="guest", comment="Role name (guest, standard, premium, admin, super_admin)"),
        sa.Column("site_access", sa.JSON(), nullable=False, comment="Explicit site permission grants on top of role defaults"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])

    # --- Site registry ---
    op.create_table(
        "sites",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False, comment="Canonical URL, unique among active sites"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", site_category, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_sites_name", "sites", ["name"])
    op.create_index("ix_sites_url", "sites", ["url"])
    op.create_index("ix_sites_is_active", "sites", ["is_active"])

    # --- Audit trail ---
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("admin_id", sa.String(64), nullable=False, comment="Acting principal (admin for mutations, requester for access events)"),
        sa.Column("admin_email", sa.String(320), nullable=False),
        sa.Column("target_user_id", sa.String(64), nullable=True),
        sa.Column("target_user_email", sa.String(320), nullable=True),
        sa.Column("site_id", sa.String(2048), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_admin_id", "audit_logs", ["admin_id"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_timestamp", table_name="audit_logs")
    op.drop_index("ix_audit_logs_admin_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_sites_is_active", table_name="sites")
    op.drop_index("ix_sites_url", table_name="sites")
    op.drop_index("ix_sites_name", table_name="sites")
    op.drop_table("sites")
    site_category.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
