"""Unit tests for db.filters predicate building."""

import pytest

from db.filters import (
    BoundPredicate,
    Predicate,
    PredicateSet,
    build_catalog_predicates,
    build_review_predicates,
)
from implementation.classes.schemas import CatalogFilters, ReviewFilters


def test_no_filters_still_requires_embedding() -> None:
    """An empty filter set should pass everything through except reviews without a vector."""
    predicates = build_review_predicates()
    assert predicates.kinds == (Predicate.HAS_EMBEDDING,)
    assert predicates.where_clause() == "mr.review_embedding IS NOT NULL"
    assert predicates.params() == []


def test_empty_review_filters_match_no_filters() -> None:
    """ReviewFilters() with every field None adds no predicates."""
    assert build_review_predicates(ReviewFilters()) == build_review_predicates()


def test_all_filters_are_joined_with_and_in_placeholder_order() -> None:
    """Every supplied constraint adds one AND predicate, params in placeholder order."""
    filters = ReviewFilters(min_year=2010, max_year=2020, genre="Drama", min_rating=7)
    predicates = build_review_predicates(filters)

    assert predicates.kinds == (
        Predicate.HAS_EMBEDDING,
        Predicate.MIN_YEAR,
        Predicate.MAX_YEAR,
        Predicate.GENRE_CONTAINS,
        Predicate.MIN_RATING,
    )
    where = predicates.where_clause()
    assert where.count(" AND ") == 4
    assert " OR " not in where
    assert predicates.params() == [2010, 2020, "%Drama%", 7]


def test_min_similarity_predicate_follows_embedding_check() -> None:
    """A similarity cutoff binds its value right after the embedding check."""
    predicates = build_review_predicates(ReviewFilters(min_rating=8), min_similarity=0.75)
    assert predicates.kinds[:2] == (Predicate.HAS_EMBEDDING, Predicate.MIN_SIMILARITY)
    assert "q.embedding" in predicates.where_clause()
    assert predicates.params() == [0.75, 8]


@pytest.mark.parametrize(
    "extra",
    [
        {"min_year": 2015},
        {"max_year": 2001},
        {"genre": "thriller"},
        {"min_rating": 9},
    ],
)
def test_adding_a_constraint_only_narrows(extra) -> None:
    """Adding a constraint keeps every existing predicate and adds exactly one more."""
    base = ReviewFilters(genre="Action")
    narrowed = ReviewFilters(**{**base.model_dump(), **extra})

    base_kinds = set(build_review_predicates(base).kinds)
    narrowed_set = build_review_predicates(narrowed)

    assert base_kinds <= set(narrowed_set.kinds)
    assert len(narrowed_set) >= len(base_kinds)
    if extra.keys() != {"genre"}:
        assert len(narrowed_set) == len(base_kinds) + 1


def test_genre_value_is_like_escaped() -> None:
    """LIKE metacharacters in the genre are matched literally."""
    predicates = build_review_predicates(ReviewFilters(genre="Sci_Fi 100%"))
    assert predicates.params() == [r"%Sci\_Fi 100\%%"]


def test_blank_genre_adds_no_predicate() -> None:
    """Whitespace-only genre is treated as absent."""
    filters = ReviewFilters(genre="   ")
    assert filters.genre is None
    assert build_review_predicates(filters).kinds == (Predicate.HAS_EMBEDDING,)


def test_catalog_predicates_empty_render_true() -> None:
    """Catalog browse without filters should render a pass-through clause."""
    predicates = build_catalog_predicates(CatalogFilters())
    assert len(predicates) == 0
    assert predicates.where_clause() == "TRUE"
    assert build_catalog_predicates(None).where_clause() == "TRUE"


def test_catalog_predicates_never_require_embedding() -> None:
    """Catalog filters apply to movies and skip review-only predicates."""
    predicates = build_catalog_predicates(CatalogFilters(genre="Drama", min_year=2015))
    assert predicates.kinds == (Predicate.MIN_YEAR, Predicate.GENRE_CONTAINS)
    assert predicates.params() == [2015, "%Drama%"]


def test_bound_predicate_requires_value_for_placeholder() -> None:
    """A placeholder predicate without a value is a programming error."""
    with pytest.raises(ValueError):
        BoundPredicate(Predicate.MIN_YEAR)
    assert BoundPredicate(Predicate.HAS_EMBEDDING).value is None


def test_predicate_set_is_immutable() -> None:
    """PredicateSet is frozen so a built set cannot grow after the fact."""
    predicates = PredicateSet()
    with pytest.raises(AttributeError):
        predicates.predicates = (BoundPredicate(Predicate.HAS_EMBEDDING),)
