"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Search Pages
    op.create_table(
        "search_pages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default="true"),
        sa.Column("suggestions_enabled", sa.Boolean(), server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Search Events
    op.create_table(
        "search_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("term", sa.Text(), nullable=False),
        sa.Column("results", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("elapsed_time", sa.Float(), nullable=False, server_default="0"),
        sa.Column("engine", sa.String(50)),
        sa.Column(
            "page_id",
            sa.Integer(),
            sa.ForeignKey("search_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_search_events_term", "search_events", ["term"])
    op.create_index("ix_search_events_page_id", "search_events", ["page_id"])
    op.create_index("ix_search_events_created_at", "search_events", ["created_at"])
    # Frequency recounts filter on lower(term)
    op.execute(
        "CREATE INDEX ix_search_events_page_lower_term ON search_events (page_id, lower(term)) "
        "WHERE results > 0"
    )

    # Search Suggestions
    op.create_table(
        "search_suggestions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("term", sa.String(255), nullable=False),
        sa.Column(
            "page_id",
            sa.Integer(),
            sa.ForeignKey("search_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("frequency", sa.Integer(), server_default="0"),
        sa.Column("approved", sa.Boolean(), server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("term", "page_id", name="uq_suggestion_term_page"),
    )
    op.create_index("ix_search_suggestions_page_id", "search_suggestions", ["page_id"])
    op.create_index("ix_search_suggestions_approved", "search_suggestions", ["approved"])
    # Prefix matching with LIKE 'term%'
    op.execute(
        "CREATE INDEX ix_search_suggestions_term_prefix "
        "ON search_suggestions (page_id, term varchar_pattern_ops)"
    )

    # API Keys
    op.create_table(
        "api_keys",
        sa.Column("id", sa.Uuid(), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("key_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tier", sa.String(20), server_default="free"),
        sa.Column("rate_limit", sa.Integer(), server_default="100"),
        sa.Column("daily_quota", sa.Integer(), server_default="1000"),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"])


def downgrade() -> None:
    op.drop_table("api_keys")
    op.drop_table("search_suggestions")
    op.drop_table("search_events")
    op.drop_table("search_pages")
