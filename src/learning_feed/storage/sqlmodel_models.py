"""SQLModel ORM tables for the per-user document collections."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class AppUser(SQLModel, table=True):
    __tablename__ = "users"  # type: ignore[bad-override]

    user_id: str = Field(primary_key=True, index=True)
    display_name: str = Field(index=True)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ContentRequestRow(SQLModel, table=True):
    """Audit marker written once per triggered generation request."""

    __tablename__ = "content_requests"  # type: ignore[bad-override]

    request_id: str = Field(primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    categories_json: str = Field(sa_column=Column(Text, nullable=False))
    daily_minutes: int
    history_count: int = 0
    requested_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class GeneratedContentRow(SQLModel, table=True):
    """Record written by the external generation worker."""

    __tablename__ = "generated_content"  # type: ignore[bad-override]
    __table_args__ = (
        Index("ix_generated_content_user_generated", "user_id", "generated_at"),
    )

    request_id: str = Field(primary_key=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        ),
    )
    status: str = Field(index=True)
    content_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    topic_summary: str | None = None
    error: str | None = None
    revision: int = 1
    generated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ContentHistoryRow(SQLModel, table=True):
    __tablename__ = "content_history"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("user_id", "request_id", name="uq_content_history_user_request"),
        Index("ix_content_history_user_generated", "user_id", "generated_at"),
    )

    seq: int | None = Field(default=None, primary_key=True)
    entry_id: str = Field(unique=True, index=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    request_id: str = Field(index=True)
    topic_summary: str
    category: str
    generated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    viewed: bool = False
    viewed_at: datetime | None = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    saved: bool = False


class RecentArticleRow(SQLModel, table=True):
    __tablename__ = "recent_articles"  # type: ignore[bad-override]
    __table_args__ = (Index("ix_recent_articles_user_read", "user_id", "read_at"),)

    seq: int | None = Field(default=None, primary_key=True)
    article_id: str = Field(unique=True, index=True)
    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    title: str = Field(index=True)
    content_json: str = Field(sa_column=Column(Text, nullable=False))
    read_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class SavedContentRow(SQLModel, table=True):
    """Existence of a row means the content is saved."""

    __tablename__ = "saved_content"  # type: ignore[bad-override]

    user_id: str = Field(
        sa_column=Column(
            ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    request_id: str = Field(primary_key=True)
    content_json: str = Field(sa_column=Column(Text, nullable=False))
    notes: str | None = None
    saved_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
