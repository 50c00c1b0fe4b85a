"""
Explicit article predicates.

``ArticleFilter`` describes *which* articles a listing wants; it is turned
into SQLAlchemy clauses in one place so that every listing applies the
moderation rule, category restriction and text search the same way.
"""
from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy import ColumnElement, or_

from blog.models import Article, Status


def _like_pattern(term: str) -> str:
    """Escape LIKE wildcards in *term* and wrap it for a substring match."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass(frozen=True)
class ArticleFilter:
    status: Optional[int] = None
    category_id: Optional[int] = None
    exclude_id: Optional[int] = None
    id_below: Optional[int] = None
    id_above: Optional[int] = None
    text: Optional[str] = None

    @classmethod
    def published(cls, **kwargs) -> "ArticleFilter":
        return cls(status=Status.ALLOW, **kwargs)

    def but(self, **changes) -> "ArticleFilter":
        """Return a copy with *changes* applied."""
        return replace(self, **changes)

    def clauses(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if self.status is not None:
            clauses.append(Article.status == int(self.status))
        if self.category_id is not None:
            clauses.append(Article.category_id == self.category_id)
        if self.exclude_id is not None:
            clauses.append(Article.id != self.exclude_id)
        if self.id_below is not None:
            clauses.append(Article.id < self.id_below)
        if self.id_above is not None:
            clauses.append(Article.id > self.id_above)
        if self.text:
            pattern = _like_pattern(self.text)
            clauses.append(
                or_(
                    Article.content.ilike(pattern, escape="\\"),
                    Article.title.ilike(pattern, escape="\\"),
                    Article.description.ilike(pattern, escape="\\"),
                )
            )
        return clauses
