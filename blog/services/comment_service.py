"""
Comment service — reader comments on articles.

New comments start disallowed and only appear in an article's comment
list once a moderator allows them.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from blog.cache import cache
from blog.models import Article, Comment, Status, User
from blog.schemas import CommentCreate

logger = logging.getLogger(__name__)


async def add_comment(db: AsyncSession, article_id: int, data: CommentCreate) -> Comment | None:
    """
    Attach a pending comment to *article_id*.

    Returns None when the article (or the given user) does not exist.
    """
    if await db.get(Article, article_id) is None:
        return None
    if data.user_id is not None and await db.get(User, data.user_id) is None:
        return None

    comment = Comment(text=data.text, user_id=data.user_id, article_id=article_id)
    db.add(comment)
    await db.flush()
    logger.info("Comment %s added to article %s (pending moderation)", comment.id, article_id)
    return comment


async def set_moderation(db: AsyncSession, comment_id: int, allow: bool) -> Comment | None:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        return None

    comment.status = Status.ALLOW if allow else Status.DISALLOW
    await db.flush()
    await cache.invalidate_catalog()
    return comment
