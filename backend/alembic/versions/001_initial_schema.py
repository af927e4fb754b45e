"""Initial schema for the stepwise template engine.

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    PURPOSE: Create the templates and indicator_definitions tables.
    """
    # Templates Table
    op.create_table(
        "templates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="Custom"),
        sa.Column("template_type", sa.String(length=20), nullable=False, server_default="execution"),
        sa.Column("direction", sa.String(length=20), nullable=True),
        sa.Column("timeframe", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("is_stepwise", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("rules", sa.JSON(), nullable=True),
        sa.Column("conversation_id", sa.String(length=100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_templates_owner", "templates", ["owner"])
    op.create_index("ix_templates_status", "templates", ["status"])

    # Indicator Definitions Table
    op.create_table(
        "indicator_definitions",
        sa.Column("indicator_type", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("example_id", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("parameters", sa.JSON(), nullable=False),
        sa.Column("prompt_snippet", sa.Text(), nullable=False, server_default=""),
        sa.Column("aliases", sa.JSON(), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("indicator_type"),
    )
    op.create_index("ix_indicator_definitions_is_active", "indicator_definitions", ["is_active"])


def downgrade() -> None:
    """
    PURPOSE: Drop all tables created in upgrade.
    """
    op.drop_index("ix_indicator_definitions_is_active", table_name="indicator_definitions")
    op.drop_table("indicator_definitions")
    op.drop_index("ix_templates_status", table_name="templates")
    op.drop_index("ix_templates_owner", table_name="templates")
    op.drop_table("templates")
