"""
Taxonomy service — the Category and Tag repositories.

Both are small lookup tables managed by administrators; articles point at
them by id (``Article.category_id`` and ``ArticleTag`` rows).
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.cache import cache
from blog.models import Article, Category, Tag
from blog.schemas import CategoryCreate, TagCreate


async def get_category(db: AsyncSession, category_id: int) -> Category | None:
    return await db.get(Category, category_id)


async def count_articles(db: AsyncSession, category_id: int) -> int:
    """Number of articles (any moderation status) filed under *category_id*."""
    q = select(func.count()).select_from(Article).where(Article.category_id == category_id)
    return (await db.execute(q)).scalar_one()


async def get_categories_with_counts(db: AsyncSession) -> list[dict]:
    """
    Every category with its article count, in one grouped query.

    The outer join keeps empty categories (count 0).
    """
    q = (
        select(Category, func.count(Article.id))
        .outerjoin(Article, Article.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.id)
    )
    result = await db.execute(q)
    return [
        {"id": category.id, "title": category.title, "article_count": count}
        for category, count in result.all()
    ]


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    category = Category(title=data.title)
    db.add(category)
    await db.flush()
    await cache.invalidate_catalog()
    return category


async def get_tags(db: AsyncSession) -> list[Tag]:
    result = await db.execute(select(Tag).order_by(Tag.id))
    return list(result.scalars().all())


async def create_tag(db: AsyncSession, data: TagCreate) -> Tag:
    tag = Tag(title=data.title)
    db.add(tag)
    await db.flush()
    return tag
