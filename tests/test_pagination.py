"""Unit tests for the Pagination value object and ArticleFilter predicates."""
import pytest

from blog.filters import ArticleFilter, _like_pattern
from blog.models import Status
from blog.pagination import Page, Pagination


@pytest.mark.parametrize(
    "total, size, page, expected",
    [
        (0, 5, 1, {"page": 1, "page_count": 0, "offset": 0, "limit": 5}),
        (12, 5, 1, {"page": 1, "page_count": 3, "offset": 0, "limit": 5}),
        (12, 5, 3, {"page": 3, "page_count": 3, "offset": 10, "limit": 5}),
        (12, 5, 9, {"page": 3, "page_count": 3, "offset": 10, "limit": 5}),
        (12, 5, 0, {"page": 1, "page_count": 3, "offset": 0, "limit": 5}),
        (6, 6, 2, {"page": 1, "page_count": 1, "offset": 0, "limit": 6}),
    ],
)
def test_pagination_arithmetic(total, size, page, expected):
    p = Pagination(total, size, page)
    assert {k: getattr(p, k) for k in expected} == expected


def test_pagination_navigation_flags():
    p = Pagination(11, 5, 2)
    assert p.has_previous and p.has_next
    assert not Pagination(11, 5, 3).has_next
    assert not Pagination(0, 5).has_previous


def test_pagination_as_dict():
    assert Pagination(7, 5, 2).as_dict() == {
        "total_count": 7,
        "page_size": 5,
        "page": 2,
        "page_count": 2,
        "offset": 5,
        "limit": 5,
    }


def test_pagination_rejects_bad_sizes():
    with pytest.raises(ValueError):
        Pagination(10, 0)
    with pytest.raises(ValueError):
        Pagination(-1, 5)


def test_empty_page_default():
    page = Page()
    assert page.items == []
    assert page.pagination.total_count == 0


def test_filter_clause_count():
    assert ArticleFilter().clauses() == []
    assert len(ArticleFilter.published().clauses()) == 1
    flt = ArticleFilter.published(category_id=3, exclude_id=9)
    assert len(flt.clauses()) == 3
    assert len(flt.but(text="x", id_below=4).clauses()) == 5


def test_filter_but_keeps_original():
    base = ArticleFilter.published()
    narrowed = base.but(id_above=10)
    assert base.id_above is None
    assert narrowed.id_above == 10
    assert narrowed.status == Status.ALLOW


def test_filter_blank_text_is_ignored():
    assert ArticleFilter(text="").clauses() == []


def test_like_pattern_escapes_wildcards():
    assert _like_pattern("50%_off\\") == "%50\\%\\_off\\\\%"
