from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATE_INPUT_FORMAT = "%Y-%m-%d %H:%M:%S"


# --- Category / Tag ---

class CategoryCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)


class CategoryResponse(CategoryCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


class CategoryWithCount(CategoryResponse):
    article_count: int = 0


class TagCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)


class TagResponse(TagCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- User ---

class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(max_length=255)
    is_admin: bool = False
    photo: str | None = Field(None, max_length=255)


class UserResponse(UserCreate):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- Comment ---

class CommentCreate(BaseModel):
    text: str = Field(min_length=1)
    user_id: int | None = None


class CommentResponse(BaseModel):
    id: int
    text: str
    status: int
    article_id: int
    user_id: int | None = None
    date: datetime
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class _ArticleFields(BaseModel):
    """Field rules shared by the create and update payloads."""

    description: str | None = None
    content: str | None = None
    date: datetime | None = None
    category_id: int | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        # Only the "YYYY-MM-DD HH:MM:SS" form is accepted from text input.
        if isinstance(value, str):
            return datetime.strptime(value, DATE_INPUT_FORMAT)
        return value


class ArticleCreate(_ArticleFields):
    title: str = Field(min_length=1, max_length=255)
    user_id: int | None = None


class ArticleUpdate(_ArticleFields):
    title: str | None = Field(None, min_length=1, max_length=255)
    # When supplied, the update is rejected if the article changed since.
    version: int | None = None

    @field_validator("title")
    @classmethod
    def _title_not_null(cls, value):
        if value is None:
            raise ValueError("title cannot be null")
        return value


class CategoryAssign(BaseModel):
    category_id: int


class TagsAssign(BaseModel):
    tags: list[int]


class ArticleResponse(BaseModel):
    id: int
    title: str
    description: str | None
    short_description: str | None
    date: datetime
    date_display: str | None
    image: str | None
    image_url: str
    viewed: int
    status: int
    version: int
    user_id: int | None
    category_id: int | None
    author: UserResponse | None = None
    category: CategoryResponse | None = None
    tags: list[TagResponse] = []


class ArticleDetail(ArticleResponse):
    content: str | None


class ArticleSummary(BaseModel):
    id: int
    title: str


class NeighborsResponse(BaseModel):
    previous: ArticleSummary | None = None
    next: ArticleSummary | None = None


# --- Pagination ---

class PaginationResponse(BaseModel):
    total_count: int
    page_size: int
    page: int
    page_count: int
    offset: int
    limit: int


class ArticlePageResponse(BaseModel):
    items: list[ArticleResponse]
    pagination: PaginationResponse


# --- Sidebar / metrics ---

class SidebarResponse(BaseModel):
    popular: list[ArticleResponse]
    recent: list[ArticleResponse]
    categories: list[CategoryWithCount]


class MetricsResponse(BaseModel):
    total_articles: int
    published_articles: int
    total_comments: int
    total_views: int
    cache_info: dict = {}
