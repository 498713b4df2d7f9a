"""Agent registry migration.

Revision ID: 001
Revises:
Create Date: 2026-10-18

Worker agents that checks are fanned out to.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create agents table."""
    op.create_table(
        "agents",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("server_ip", sa.String(255), nullable=False),
        sa.Column("port", sa.Integer(), nullable=False, server_default="8000"),
        sa.Column("location", sa.String(50), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="offline"),
        sa.Column("hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True),
        sa.Column("agent_location", sa.String(255), nullable=True),
        sa.Column("agent_country_code", sa.String(10), nullable=True),
        sa.Column("agent_country", sa.String(255), nullable=True),
        sa.Column("agent_city", sa.String(255), nullable=True),
        sa.Column("agent_ip", sa.String(255), nullable=True),
        sa.Column("agent_asn", sa.String(255), nullable=True),
        sa.Column("country_emoji", sa.String(10), nullable=True),
        sa.Column("deployment_path", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # Dispatch reads filter on status; listings sort on created_at
    op.create_index("ix_agents_status", "agents", ["status"])
    op.create_index("ix_agents_created_at", "agents", ["created_at"])


def downgrade() -> None:
    """Drop agents table."""
    op.drop_index("ix_agents_created_at", table_name="agents")
    op.drop_index("ix_agents_status", table_name="agents")
    op.drop_table("agents")
