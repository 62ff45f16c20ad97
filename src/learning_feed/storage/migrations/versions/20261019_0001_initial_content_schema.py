"""Initial per-user content collections schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index("ix_users_user_id", "users", ["user_id"])
    op.create_index("ix_users_display_name", "users", ["display_name"])

    op.create_table(
        "content_requests",
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("categories_json", sa.Text(), nullable=False),
        sa.Column("daily_minutes", sa.Integer(), nullable=False),
        sa.Column("history_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("request_id"),
    )
    op.create_index("ix_content_requests_user_id", "content_requests", ["user_id"])

    op.create_table(
        "generated_content",
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("content_json", sa.Text(), nullable=True),
        sa.Column("topic_summary", sa.String(), nullable=True),
        sa.Column("error", sa.String(), nullable=True),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "request_id"),
    )
    op.create_index("ix_generated_content_user_id", "generated_content", ["user_id"])
    op.create_index("ix_generated_content_status", "generated_content", ["status"])
    op.create_index(
        "ix_generated_content_user_generated",
        "generated_content",
        ["user_id", "generated_at"],
    )

    op.create_table(
        "content_history",
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("entry_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("topic_summary", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("viewed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("saved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("seq"),
        sa.UniqueConstraint("user_id", "request_id", name="uq_content_history_user_request"),
    )
    op.create_index("ix_content_history_entry_id", "content_history", ["entry_id"], unique=True)
    op.create_index("ix_content_history_user_id", "content_history", ["user_id"])
    op.create_index("ix_content_history_request_id", "content_history", ["request_id"])
    op.create_index(
        "ix_content_history_user_generated",
        "content_history",
        ["user_id", "generated_at"],
    )

    op.create_table(
        "recent_articles",
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("article_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content_json", sa.Text(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("seq"),
    )
    op.create_index("ix_recent_articles_article_id", "recent_articles", ["article_id"], unique=True)
    op.create_index("ix_recent_articles_user_id", "recent_articles", ["user_id"])
    op.create_index("ix_recent_articles_title", "recent_articles", ["title"])
    op.create_index("ix_recent_articles_user_read", "recent_articles", ["user_id", "read_at"])

    op.create_table(
        "saved_content",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("request_id", sa.String(), nullable=False),
        sa.Column("content_json", sa.Text(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("saved_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.user_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "request_id"),
    )


def downgrade() -> None:
    op.drop_table("saved_content")
    op.drop_table("recent_articles")
    op.drop_table("content_history")
    op.drop_table("generated_content")
    op.drop_table("content_requests")
    op.drop_table("users")
