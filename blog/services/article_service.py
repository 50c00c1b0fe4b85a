"""
Article service — the article catalog.

Design notes
------------
- Listings are described by an ``ArticleFilter`` and paginated with
  ``Pagination``; every public listing shows allowed (status=1) articles
  only. Search and prev/next navigation accept ``include_hidden=True`` for
  moderation screens.
- Two write paths exist. ``create_article`` / ``update_article`` take the
  validated pydantic payloads. ``apply_trusted_update`` (and the helpers
  built on it: moderation, image, category) writes a fixed set of columns
  without going through those schemas; it is meant for state changes the
  application itself decides on.
- Relationships are ``noload``; loaders that need author, category and
  tags use ``populate_existing`` so objects already in the session are
  refreshed instead of keeping stale collections.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency. The delete-then-insert performed by
  ``save_tags`` therefore becomes visible to other connections in a single
  commit.
- Optimistic locking comes from ``Article.version``; a lost race surfaces
  as ``ConcurrentUpdateError``.
"""
import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.exc import StaleDataError

from blog.cache import FRONT_PAGE_PREFIX, SIDEBAR_KEY, cache
from blog.config import settings
from blog.exceptions import ConcurrentUpdateError, PersistenceFailure, UnknownReferenceError
from blog.filters import ArticleFilter
from blog.formatting import DateFormatter
from blog.images import ImageStore
from blog.models import Article, ArticleTag, Category, Comment, Status, Tag, User
from blog.pagination import Page, Pagination
from blog.schemas import ArticleCreate, ArticleUpdate
from blog.services import taxonomy_service

logger = logging.getLogger(__name__)

# Columns the trusted path may write.
_TRUSTED_FIELDS: frozenset[str] = frozenset({"status", "image", "category_id"})

_TAG_COLLECTIONS = (list, tuple, set, frozenset)


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

def _with_relations():
    return (
        joinedload(Article.author),
        joinedload(Article.category),
        selectinload(Article.tags),
    )


async def _flush(db: AsyncSession) -> None:
    """Flush pending changes, translating store errors into service errors."""
    try:
        await db.flush()
    except StaleDataError as exc:
        raise ConcurrentUpdateError() from exc
    except IntegrityError as exc:
        raise PersistenceFailure(f"the record could not be saved: {exc.orig}") from exc


async def _count(db: AsyncSession, flt: ArticleFilter) -> int:
    q = select(func.count()).select_from(Article).where(*flt.clauses())
    return (await db.execute(q)).scalar_one()


async def _fetch(
    db: AsyncSession,
    flt: ArticleFilter,
    order_by: Sequence,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[Article]:
    q = (
        select(Article)
        .where(*flt.clauses())
        .options(*_with_relations())
        .order_by(*order_by)
        .execution_options(populate_existing=True)
    )
    if offset:
        q = q.offset(offset)
    if limit is not None:
        q = q.limit(limit)
    result = await db.execute(q)
    return list(result.unique().scalars().all())


async def _paginate(
    db: AsyncSession,
    flt: ArticleFilter,
    page: int,
    page_size: int,
    order_by: Sequence,
) -> Page[Article]:
    """COUNT then one LIMIT/OFFSET SELECT; the count drives page clamping."""
    pagination = Pagination(await _count(db, flt), page_size, page)
    if pagination.total_count == 0:
        return Page([], pagination)
    items = await _fetch(db, flt, order_by, limit=pagination.limit, offset=pagination.offset)
    return Page(items, pagination)


async def _require(db: AsyncSession, model, pk: Optional[int], label: str) -> None:
    if pk is not None and await db.get(model, pk) is None:
        raise UnknownReferenceError(f"{label} {pk} does not exist")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, article_id: int) -> Article | None:
    """Return the article with author, category and tags loaded, or None."""
    q = (
        select(Article)
        .where(Article.id == article_id)
        .options(*_with_relations())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def list_published(
    db: AsyncSession, page: int = 1, page_size: Optional[int] = None
) -> Page[Article]:
    """Allowed articles in id (insertion) order, one page at a time."""
    return await _paginate(
        db,
        ArticleFilter.published(),
        page,
        page_size or settings.DEFAULT_PAGE_SIZE,
        (Article.id.asc(),),
    )


async def list_by_category(
    db: AsyncSession, category_id: int, page: int = 1, page_size: Optional[int] = None
) -> Page[Article]:
    return await _paginate(
        db,
        ArticleFilter.published(category_id=category_id),
        page,
        page_size or settings.CATEGORY_PAGE_SIZE,
        (Article.id.asc(),),
    )


async def get_popular(db: AsyncSession, limit: Optional[int] = None) -> list[Article]:
    """Most viewed allowed articles; equal counts keep the older article first."""
    return await _fetch(
        db,
        ArticleFilter.published(),
        (Article.viewed.desc(), Article.id.asc()),
        limit=limit or settings.SIDEBAR_SIZE,
    )


async def get_recent(db: AsyncSession, limit: Optional[int] = None) -> list[Article]:
    """Newest allowed articles by publication date; same-date ties go to the later insert."""
    return await _fetch(
        db,
        ArticleFilter.published(),
        (Article.date.desc(), Article.id.desc()),
        limit=limit or settings.SIDEBAR_SIZE,
    )


async def get_related(db: AsyncSession, article: Article) -> list[Article]:
    """
    Other allowed articles from the same category.

    Empty when the article is uncategorised or is the only article in its
    category.
    """
    if article.category_id is None:
        return []
    if await taxonomy_service.count_articles(db, article.category_id) <= 1:
        return []
    return await _fetch(
        db,
        ArticleFilter.published(category_id=article.category_id, exclude_id=article.id),
        (Article.id.asc(),),
    )


async def get_neighbors(
    db: AsyncSession, article_id: int, include_hidden: bool = False
) -> dict[str, Article | None]:
    """
    Previous/next article by id for prev/next navigation.

    ``previous`` is the largest id below *article_id* and ``next`` the
    smallest id above it. Disallowed articles are skipped unless
    *include_hidden* is set.
    """
    base = ArticleFilter() if include_hidden else ArticleFilter.published()
    previous = await _fetch(db, base.but(id_below=article_id), (Article.id.desc(),), limit=1)
    following = await _fetch(db, base.but(id_above=article_id), (Article.id.asc(),), limit=1)
    return {
        "previous": previous[0] if previous else None,
        "next": following[0] if following else None,
    }


async def search_articles(
    db: AsyncSession,
    q: Optional[str],
    page: int = 1,
    page_size: Optional[int] = None,
    include_hidden: bool = False,
) -> Page[Article]:
    """
    Case-insensitive substring search over content, title and description.

    A blank query matches nothing and returns an empty page.
    """
    page_size = page_size or settings.SEARCH_PAGE_SIZE
    term = (q or "").strip()
    if not term:
        return Page([], Pagination(0, page_size, page))

    base = ArticleFilter() if include_hidden else ArticleFilter.published()
    return await _paginate(db, base.but(text=term), page, page_size, (Article.id.asc(),))


async def get_selected_tag_ids(db: AsyncSession, article: Article) -> list[int]:
    q = (
        select(ArticleTag.tag_id)
        .where(ArticleTag.article_id == article.id)
        .order_by(ArticleTag.tag_id)
    )
    return list((await db.execute(q)).scalars().all())


async def get_article_comments(db: AsyncSession, article: Article) -> list[Comment]:
    """Allowed comments of *article*, oldest first."""
    q = (
        select(Comment)
        .where(Comment.article_id == article.id, Comment.status == Status.ALLOW)
        .options(joinedload(Comment.author))
        .order_by(Comment.id)
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all())


def truncated_description(article: Article, max_bytes: Optional[int] = None) -> Optional[str]:
    """
    Description cut to at most *max_bytes* UTF-8 bytes.

    The cut never splits a multi-byte character: a partial trailing
    character is dropped, so the result may be a few bytes shorter.
    """
    if not article.description:
        return article.description
    budget = settings.DESCRIPTION_MAX_BYTES if max_bytes is None else max_bytes
    return article.description.encode("utf-8")[:budget].decode("utf-8", errors="ignore")


def image_url(article: Article) -> str:
    if article.image:
        return f"{settings.UPLOAD_URL_PREFIX}{article.image}"
    return settings.NO_IMAGE_URL


# ---------------------------------------------------------------------------
# Validated submit path
# ---------------------------------------------------------------------------

async def create_article(
    db: AsyncSession, data: ArticleCreate, user_id: Optional[int] = None
) -> Article:
    author_id = user_id if user_id is not None else data.user_id
    await _require(db, User, author_id, "user")
    await _require(db, Category, data.category_id, "category")

    article = Article(
        title=data.title,
        description=data.description,
        content=data.content,
        category_id=data.category_id,
        user_id=author_id,
    )
    if data.date is not None:
        article.date = data.date

    db.add(article)
    await _flush(db)
    logger.info("Created article %s (%r)", article.id, article.title)

    await cache.invalidate_catalog()
    return await get_article(db, article.id)


async def update_article(
    db: AsyncSession, article_id: int, data: ArticleUpdate
) -> Article | None:
    """
    Apply the fields explicitly set in *data*; None when the article is missing.

    When *data.version* is given it must match the stored version,
    otherwise ``ConcurrentUpdateError`` is raised and nothing changes.
    """
    article = await get_article(db, article_id)
    if article is None:
        return None

    changes = data.model_dump(exclude_unset=True)
    expected_version = changes.pop("version", None)
    if expected_version is not None and expected_version != article.version:
        raise ConcurrentUpdateError(
            f"article {article_id} is at version {article.version}, not {expected_version}"
        )
    if changes.get("date", ...) is None:
        changes.pop("date")
    if changes.get("category_id") is not None:
        await _require(db, Category, changes["category_id"], "category")

    for field, value in changes.items():
        setattr(article, field, value)

    await _flush(db)
    await cache.invalidate_catalog()
    return await get_article(db, article.id)


# ---------------------------------------------------------------------------
# Trusted updates (no payload validation)
# ---------------------------------------------------------------------------

async def apply_trusted_update(db: AsyncSession, article: Article, **fields) -> bool:
    """
    Write internal state changes straight to the row.

    Only ``status``, ``image`` and ``category_id`` may be set this way.
    """
    unknown = set(fields) - _TRUSTED_FIELDS
    if unknown:
        raise ValueError(f"not a trusted field: {', '.join(sorted(unknown))}")

    for field, value in fields.items():
        setattr(article, field, value)
    await _flush(db)
    await cache.invalidate_catalog()
    return True


async def set_moderation(db: AsyncSession, article: Article, allow: bool) -> bool:
    status = Status.ALLOW if allow else Status.DISALLOW
    logger.info("Article %s moderation -> %s", article.id, status.name)
    return await apply_trusted_update(db, article, status=int(status))


async def allow(db: AsyncSession, article: Article) -> bool:
    return await set_moderation(db, article, True)


async def disallow(db: AsyncSession, article: Article) -> bool:
    return await set_moderation(db, article, False)


async def save_image(db: AsyncSession, article: Article, filename: Optional[str]) -> bool:
    return await apply_trusted_update(db, article, image=filename)


async def save_category(db: AsyncSession, article: Article, category_id: int) -> bool:
    """Link *article* to the category; False (and no change) if it does not exist."""
    category = await taxonomy_service.get_category(db, category_id)
    if category is None:
        return False
    await apply_trusted_update(db, article, category_id=category.id)
    set_committed_value(article, "category", category)
    return True


async def record_view(db: AsyncSession, article: Article) -> int:
    """
    Add one to the view counter and return the new value.

    Done as ``viewed = viewed + 1`` in SQL so concurrent readers never
    lose increments; no other column (not even ``version``) changes.
    """
    await db.execute(
        update(Article)
        .where(Article.id == article.id)
        .values(viewed=Article.viewed + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(article, ["viewed"])
    return article.viewed


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

async def clear_current_tags(db: AsyncSession, article: Article) -> None:
    await db.execute(delete(ArticleTag).where(ArticleTag.article_id == article.id))


async def save_tags(db: AsyncSession, article: Article, tag_ids: Iterable[int]) -> list[int] | None:
    """
    Replace the article's tag set with *tag_ids*.

    Anything that is not a list/tuple/set is ignored (returns None). An
    empty collection clears all tags. Ids that do not resolve to a Tag are
    logged and skipped; duplicates are linked once. Returns the linked ids
    in the order given.
    """
    if not isinstance(tag_ids, _TAG_COLLECTIONS):
        logger.debug("save_tags(%s): ignoring non-collection %r", article.id, tag_ids)
        return None

    wanted = list(dict.fromkeys(tag_ids))
    await clear_current_tags(db, article)

    linked: list[int] = []
    if wanted:
        result = await db.execute(select(Tag.id).where(Tag.id.in_(wanted)))
        existing = set(result.scalars().all())
        missing = [tag_id for tag_id in wanted if tag_id not in existing]
        if missing:
            logger.warning("Article %s: skipping unknown tag id(s) %s", article.id, missing)
        linked = [tag_id for tag_id in wanted if tag_id in existing]

    if linked:
        await db.execute(
            insert(ArticleTag),
            [{"article_id": article.id, "tag_id": tag_id} for tag_id in linked],
        )
    # Cached listings embed each article's tags.
    await cache.invalidate_catalog()
    return linked


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

async def delete_article(db: AsyncSession, article_id: int, image_store: ImageStore) -> bool:
    """
    Delete the article, its image file, tag links and comments.

    The image is removed first. If the filesystem refuses, the error is
    logged and the row is deleted anyway; an orphaned file is preferred to
    an article that cannot be deleted. Returns False for an unknown id.
    """
    article = await db.get(Article, article_id)
    if article is None:
        return False

    try:
        image_store.delete_image(article.image)
    except OSError as exc:
        logger.warning("Article %s: could not delete image %r: %s", article_id, article.image, exc)

    await clear_current_tags(db, article)
    await db.execute(delete(Comment).where(Comment.article_id == article_id))
    await db.delete(article)
    await _flush(db)
    logger.info("Deleted article %s", article_id)

    await cache.invalidate_catalog()
    return True


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "is_admin": user.is_admin,
        "photo": user.photo,
    }


def article_to_dict(article: Article, formatter: DateFormatter, detail: bool = False) -> dict:
    data = {
        "id": article.id,
        "title": article.title,
        "description": article.description,
        "short_description": truncated_description(article),
        "date": article.date.isoformat() if article.date else None,
        "date_display": formatter.format(article.date),
        "image": article.image,
        "image_url": image_url(article),
        "viewed": article.viewed,
        "status": article.status,
        "version": article.version,
        "user_id": article.user_id,
        "category_id": article.category_id,
        "author": _user_to_dict(article.author),
        "category": (
            {"id": article.category.id, "title": article.category.title}
            if article.category is not None
            else None
        ),
        "tags": [{"id": t.id, "title": t.title} for t in article.tags],
    }
    if detail:
        data["content"] = article.content
    return data


def page_to_dict(page: Page[Article], formatter: DateFormatter) -> dict:
    return {
        "items": [article_to_dict(a, formatter) for a in page.items],
        "pagination": page.pagination.as_dict(),
    }


# ---------------------------------------------------------------------------
# Cached listings
# ---------------------------------------------------------------------------

async def get_front_page(
    db: AsyncSession, formatter: DateFormatter, page: int = 1, page_size: Optional[int] = None
) -> dict:
    page_size = page_size or settings.DEFAULT_PAGE_SIZE
    cache_key = f"{FRONT_PAGE_PREFIX}:{page}:{page_size}"
    cached = await cache.get(cache_key)
    if cached:
        return cached

    data = page_to_dict(await list_published(db, page, page_size), formatter)
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_LIST)
    return data


async def get_sidebar(db: AsyncSession, formatter: DateFormatter) -> dict:
    """
    Popular, recent and category blocks shown next to every page.

    View counts move on every read but the sidebar is only refreshed when
    its TTL expires or a catalog write invalidates it.
    """
    cached = await cache.get(SIDEBAR_KEY)
    if cached:
        return cached

    data = {
        "popular": [article_to_dict(a, formatter) for a in await get_popular(db)],
        "recent": [article_to_dict(a, formatter) for a in await get_recent(db)],
        "categories": await taxonomy_service.get_categories_with_counts(db),
    }
    await cache.set(SIDEBAR_KEY, data, ttl=settings.CACHE_TTL_SIDEBAR)
    return data
