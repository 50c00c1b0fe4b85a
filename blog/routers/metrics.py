from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from blog.cache import cache
from blog.database import get_db
from blog.formatting import DateFormatter, get_formatter
from blog.models import Article, Comment, Status
from blog.schemas import MetricsResponse, SidebarResponse
from blog.services import article_service

router = APIRouter(prefix="/api/v1", tags=["metrics"])

@router.get("/sidebar", response_model=SidebarResponse)
async def sidebar(db: AsyncSession = Depends(get_db), formatter: DateFormatter = Depends(get_formatter)):
    return await article_service.get_sidebar(db, formatter)

@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):

    totals = (
        await db.execute(
            select(
                func.count(Article.id),
                func.count(Article.id).filter(Article.status == Status.ALLOW),
                func.coalesce(func.sum(Article.viewed), 0),
            )
        )
    ).one()

    total_comments = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()

    return MetricsResponse(
        total_articles=totals[0],
        published_articles=totals[1],
        total_comments=total_comments,
        total_views=totals[2],
        cache_info=cache.stats,
    )
