from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from blog.database import get_db
from blog.dependencies import PageParams
from blog.formatting import DateFormatter, get_formatter
from blog.schemas import ArticlePageResponse, CategoryCreate, CategoryResponse, CategoryWithCount
from blog.services import article_service, taxonomy_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])

@router.get("", response_model=list[CategoryWithCount])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await taxonomy_service.get_categories_with_counts(db)

@router.post("", status_code=201, response_model=CategoryResponse)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await taxonomy_service.create_category(db, data)

@router.get("/{category_id}/articles", response_model=ArticlePageResponse)
async def category_articles(
    category_id: int,
    params: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    if await taxonomy_service.get_category(db, category_id) is None:
        raise HTTPException(status_code=404, detail="Category not found")
    page = await article_service.list_by_category(db, category_id, params.page, params.page_size)
    return article_service.page_to_dict(page, formatter)
