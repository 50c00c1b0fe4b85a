import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Pagination:
    """
    Offset/limit arithmetic for a result set of ``total_count`` rows.

    ``page`` is 1-based. Out-of-range requests are clamped into
    ``[1, page_count]`` so a stale "page 7" link after deletions still
    lands on the last page instead of an empty one. An empty result set
    has ``page_count == 0`` and reports page 1.
    """

    total_count: int
    page_size: int
    requested_page: int = 1

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.total_count < 0:
            raise ValueError(f"total_count must be >= 0, got {self.total_count}")

    @property
    def page_count(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def page(self) -> int:
        return min(max(self.requested_page, 1), max(self.page_count, 1))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    def as_dict(self) -> dict:
        return {
            "total_count": self.total_count,
            "page_size": self.page_size,
            "page": self.page,
            "page_count": self.page_count,
            "offset": self.offset,
            "limit": self.limit,
        }


@dataclass
class Page(Generic[T]):
    """One page of items together with the pagination that produced it."""

    items: list[T] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(0, 1))
