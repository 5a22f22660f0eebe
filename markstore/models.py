"""
SQLAlchemy models for the markstore engine.

This module defines the five persistent relations: bookmarks, their archived
content, tags, the bookmark/tag association, and accounts.
"""
from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Table, Index,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that always round-trips as UTC.

    SQLite has no timezone support and hands back naive values; those are
    stored in UTC, so UTC is attached on the way out.
    """
    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Association table for many-to-many relationship between bookmarks and tags
bookmark_tag = Table(
    'bookmark_tag',
    Base.metadata,
    Column('bookmark_id', Integer, ForeignKey('bookmark.id', ondelete='CASCADE'), primary_key=True),
    Column('tag_id', Integer, ForeignKey('tag.id', ondelete='CASCADE'), primary_key=True),
    Index('ix_bookmark_tag_tag_id', 'tag_id')
)


class Bookmark(Base):
    """
    A saved URL with the metadata extracted when it was archived.

    Attributes:
        id: Primary key, assigned by the database
        url: The bookmark URL, unique across the store
        title: Bookmark title
        image_url: Lead image of the page
        excerpt: Short summary of the page
        author: Page author
        min_read_time: Lower bound of the estimated read time, in minutes
        max_read_time: Upper bound of the estimated read time, in minutes
        modified: Last modification time (UTC)
    """
    __tablename__ = 'bookmark'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default='')
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default='')
    author: Mapped[str] = mapped_column(Text, nullable=False, default='')
    min_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    modified: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    # Relationships
    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary=bookmark_tag,
        order_by="Tag.name",
        lazy="selectin"  # Eager load tags to avoid N+1 queries
    )
    content: Mapped[Optional["Content"]] = relationship(
        "Content",
        back_populates="bookmark",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint('url', name='uq_bookmark_url'),
        CheckConstraint('min_read_time >= 0', name='ck_bookmark_min_read_time'),
        CheckConstraint('max_read_time >= 0', name='ck_bookmark_max_read_time'),
    )

    def __repr__(self):
        return f"<Bookmark(id={self.id}, title='{self.title[:50]}', url='{self.url[:50]}')>"


class Content(Base):
    """
    Archived content of a bookmark.

    Shares its identity with the owning bookmark and lives and dies with it.
    The title and content columns feed the full-text index.
    """
    __tablename__ = 'content'

    bookmark_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('bookmark.id', ondelete='CASCADE'),
        primary_key=True,
        autoincrement=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default='')
    content: Mapped[str] = mapped_column(Text, nullable=False, default='')
    html: Mapped[str] = mapped_column(Text, nullable=False, default='')

    bookmark: Mapped["Bookmark"] = relationship("Bookmark", back_populates="content")

    def __repr__(self):
        return f"<Content(bookmark_id={self.bookmark_id}, length={len(self.content or '')})>"


class Tag(Base):
    """Tag for categorizing bookmarks. Names are stored normalized."""
    __tablename__ = 'tag'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False)

    __table_args__ = (
        UniqueConstraint('name', name='uq_tag_name'),
    )

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"


class Account(Base):
    """Login principal. Only a bcrypt hash of the password is kept."""
    __tablename__ = 'account'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(250), nullable=False)
    password: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        UniqueConstraint('username', name='uq_account_username'),
    )

    def __repr__(self):
        return f"<Account(id={self.id}, username='{self.username}')>"
