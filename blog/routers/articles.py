from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from blog.database import get_db
from blog.dependencies import PageParams, article_or_404
from blog.exceptions import CatalogError
from blog.formatting import DateFormatter, get_formatter
from blog.images import ImageStore, get_image_store
from blog.models import Article
from blog.schemas import (
    ArticleCreate,
    ArticleDetail,
    ArticlePageResponse,
    ArticleResponse,
    ArticleUpdate,
    CategoryAssign,
    CommentCreate,
    CommentResponse,
    NeighborsResponse,
    TagsAssign,
)
from blog.services import article_service, comment_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


def _summary(article: Article | None) -> dict | None:
    return {"id": article.id, "title": article.title} if article else None


# --- Listings ---

@router.get("", response_model=ArticlePageResponse)
async def list_articles(
    params: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    return await article_service.get_front_page(db, formatter, params.page, params.page_size)

@router.get("/popular", response_model=list[ArticleResponse])
async def popular_articles(
    db: AsyncSession = Depends(get_db), formatter: DateFormatter = Depends(get_formatter)
):
    return [article_service.article_to_dict(a, formatter) for a in await article_service.get_popular(db)]

@router.get("/recent", response_model=list[ArticleResponse])
async def recent_articles(
    db: AsyncSession = Depends(get_db), formatter: DateFormatter = Depends(get_formatter)
):
    return [article_service.article_to_dict(a, formatter) for a in await article_service.get_recent(db)]

@router.get("/search", response_model=ArticlePageResponse)
async def search_articles(
    q: str = Query("", max_length=255),
    include_hidden: bool = False,
    params: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    page = await article_service.search_articles(
        db, q, params.page, params.page_size, include_hidden=include_hidden
    )
    return article_service.page_to_dict(page, formatter)


# --- Single article ---

@router.get("/{article_id}", response_model=ArticleDetail)
async def get_article(
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    await article_service.record_view(db, article)
    return article_service.article_to_dict(article, formatter, detail=True)

@router.get("/{article_id}/neighbors", response_model=NeighborsResponse)
async def article_neighbors(
    article_id: int, include_hidden: bool = False, db: AsyncSession = Depends(get_db)
):
    neighbors = await article_service.get_neighbors(db, article_id, include_hidden=include_hidden)
    return {"previous": _summary(neighbors["previous"]), "next": _summary(neighbors["next"])}

@router.get("/{article_id}/related", response_model=list[ArticleResponse])
async def related_articles(
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    related = await article_service.get_related(db, article)
    return [article_service.article_to_dict(a, formatter) for a in related]

@router.get("/{article_id}/comments", response_model=list[CommentResponse])
async def article_comments(
    article: Article = Depends(article_or_404), db: AsyncSession = Depends(get_db)
):
    return await article_service.get_article_comments(db, article)

@router.post("/{article_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(article_id: int, data: CommentCreate, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.add_comment(db, article_id, data)
    if comment is None:
        raise HTTPException(status_code=404, detail="Article or user not found")
    return comment


# --- Submit path ---

@router.post("", status_code=201, response_model=ArticleDetail)
async def create_article(
    data: ArticleCreate,
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    article = await article_service.create_article(db, data)
    return article_service.article_to_dict(article, formatter, detail=True)

@router.put("/{article_id}", response_model=ArticleDetail)
async def update_article(
    article_id: int,
    data: ArticleUpdate,
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    article = await article_service.update_article(db, article_id, data)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article_service.article_to_dict(article, formatter, detail=True)

@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
):
    if not await article_service.delete_article(db, article_id, images):
        raise HTTPException(status_code=404, detail="Article not found")


# --- Relations and trusted updates ---

@router.put("/{article_id}/category", response_model=ArticleResponse)
async def set_category(
    data: CategoryAssign,
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    if not await article_service.save_category(db, article, data.category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return article_service.article_to_dict(article, formatter)

@router.put("/{article_id}/tags", response_model=ArticleResponse)
async def set_tags(
    data: TagsAssign,
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    await article_service.save_tags(db, article, data.tags)
    article = await article_service.get_article(db, article.id)
    return article_service.article_to_dict(article, formatter)

@router.post("/{article_id}/allow", response_model=ArticleResponse)
async def allow_article(
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    await article_service.allow(db, article)
    return article_service.article_to_dict(article, formatter)

@router.post("/{article_id}/disallow", response_model=ArticleResponse)
async def disallow_article(
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    formatter: DateFormatter = Depends(get_formatter),
):
    await article_service.disallow(db, article)
    return article_service.article_to_dict(article, formatter)

@router.post("/{article_id}/image", response_model=ArticleResponse)
async def upload_image(
    file: UploadFile,
    article: Article = Depends(article_or_404),
    db: AsyncSession = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
    formatter: DateFormatter = Depends(get_formatter),
):
    previous = article.image
    filename = await images.save_upload(file)
    try:
        await article_service.save_image(db, article, filename)
    except CatalogError:
        images.delete_image(filename)
        raise
    images.delete_image(previous)
    return article_service.article_to_dict(article, formatter)
