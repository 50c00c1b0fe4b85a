import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blog.cache import cache
from blog.config import settings
from blog.exceptions import (
    CatalogError,
    InvalidImageError,
    PersistenceFailure,
    UnknownReferenceError,
)
from blog.logging_config import configure_logging
from blog.middleware import TimingMiddleware
from blog.routers import articles, categories, comments, metrics, tags, users

configure_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # The cache degrades to a no-op when Redis is unreachable.
    await cache.connect()
    yield
    await cache.disconnect()

app = FastAPI(
    title="Blog API",
    description="Articles, categories, tags and comments for a blog",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(articles.router)
app.include_router(categories.router)
app.include_router(tags.router)
app.include_router(comments.router)
app.include_router(users.router)
app.include_router(metrics.router)

_STATUS_BY_ERROR = (
    (PersistenceFailure, 409),
    (UnknownReferenceError, 422),
    (InvalidImageError, 422),
)

@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
    logger.info("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": exc.msg})

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0", "env": settings.APP_ENV}
