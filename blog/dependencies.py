from typing import Optional

from fastapi import Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog.config import settings
from blog.database import get_db
from blog.models import Article
from blog.services import article_service


class PageParams:
    """
    Reusable FastAPI dependency for ``?page=&page_size=`` query parameters.

    ``page_size`` is optional so each listing can fall back to its own
    default (5 for the front page, 6 for search and categories); when given
    it is clamped to ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: Optional[int] = Query(
            None, ge=1, description="Items per page; defaults depend on the listing."
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE) if page_size else None


async def article_or_404(article_id: int, db: AsyncSession = Depends(get_db)) -> Article:
    article = await article_service.get_article(db, article_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article
