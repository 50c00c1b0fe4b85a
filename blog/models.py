from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blog.database import Base


class Status(enum.IntEnum):
    """Moderation state shared by articles and comments."""

    DISALLOW = 0
    ALLOW = 1


def _now() -> datetime:
    # Naive wall-clock time; see settings.SOURCE_UTC_OFFSET_HOURS.
    return datetime.now().replace(microsecond=0)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    photo: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


# ---------------------------------------------------------------------------
# Category / Tag
# ---------------------------------------------------------------------------
class Category(Base):
    __tablename__ = "category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)


class Tag(Base):
    __tablename__ = "tag"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)


# ---------------------------------------------------------------------------
# ArticleTag: join entity, the composite key forbids duplicate pairs
# ---------------------------------------------------------------------------
class ArticleTag(Base):
    __tablename__ = "article_tag"

    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("article.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True, index=True
    )


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(Base):
    __tablename__ = "article"

    __table_args__ = (
        # Front page and sidebar listings
        Index("ix_article_status_date", "status", "date"),
        Index("ix_article_status_viewed", "status", "viewed"),
        # Related articles
        Index("ix_article_category_id_status", "category_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime, default=_now, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    viewed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[int] = mapped_column(SmallInteger, default=Status.ALLOW, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("category.id", ondelete="SET NULL"), nullable=True
    )

    # Optimistic locking: every ORM UPDATE checks and bumps ``version``.
    __mapper_args__ = {"version_id_col": version}

    # Relationships are never lazy-loaded; services use selectinload/joinedload.
    # Collections are view-only: links and comments are written through
    # ArticleTag / Comment rows directly.
    author: Mapped[Optional["User"]] = relationship("User", lazy="noload")
    category: Mapped[Optional["Category"]] = relationship("Category", lazy="noload")
    tags: Mapped[List["Tag"]] = relationship(
        "Tag",
        secondary="article_tag",
        order_by="Tag.id",
        viewonly=True,
        lazy="noload",
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment", order_by="Comment.id", viewonly=True, lazy="noload"
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, default=_now, nullable=False)
    status: Mapped[int] = mapped_column(SmallInteger, default=Status.DISALLOW, nullable=False)

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("article.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author: Mapped[Optional["User"]] = relationship("User", lazy="noload")
