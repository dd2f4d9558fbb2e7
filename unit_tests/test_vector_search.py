"""Unit tests for db.vector_search (similarity ranking)."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import psycopg
import pytest

from db import vector_search
from db.filters import Predicate
from implementation.classes.errors import ProviderError, StorageError, ValidationError
from implementation.classes.schemas import ReviewFilters

HEIST_QUERY = "a tense undercover heist thriller"


def _row(movie: str, similarity: str, rating=8, genre="Crime", year=1995) -> tuple:
    """Build one ranked-review row as returned by Postgres."""
    return (movie, f"{movie} review", rating, genre, year, Decimal(similarity))


@pytest.fixture
def mock_embedding(mocker, fake_embedding):
    return mocker.patch(
        "db.vector_search.generate_embedding",
        new=AsyncMock(return_value=fake_embedding),
    )


@pytest.fixture
def mock_fetch(mocker):
    def _factory(rows):
        return mocker.patch(
            "db.vector_search.fetch_ranked_reviews",
            new=AsyncMock(return_value=rows),
        )
    return _factory


# ===============================
#        search_reviews
# ===============================

@pytest.mark.asyncio
async def test_search_reviews_ranked_above_threshold(mock_embedding, mock_fetch) -> None:
    """Scenario A: <= limit rows, all at or above the threshold, most similar first."""
    fetch = mock_fetch([
        _row("Heat", "0.9132"),
        _row("The Departed", "0.8841"),
        _row("Inside Man", "0.8841"),
        _row("Point Break", "0.7650"),
    ])

    result = await vector_search.search_reviews(HEIST_QUERY, limit=5, min_similarity=0.75)

    mock_embedding.assert_awaited_once_with(HEIST_QUERY)
    vector_literal, predicates, limit = fetch.await_args.args
    assert vector_literal.startswith("[") and vector_literal.endswith("]")
    assert limit == 5
    assert predicates.kinds == (Predicate.HAS_EMBEDDING, Predicate.MIN_SIMILARITY)
    assert predicates.params() == [0.75]

    scores = [review.similarity_score for review in result.reviews]
    assert result.found
    assert len(scores) <= 5
    assert all(score >= 0.75 for score in scores)
    assert scores == sorted(scores, reverse=True)
    assert result.min_similarity == 0.75
    assert result.reviews[0].movie_title == "Heat"


@pytest.mark.asyncio
async def test_search_reviews_empty_result_is_explicit(mock_embedding, mock_fetch) -> None:
    """No rows above the threshold returns found=False instead of raising."""
    mock_fetch([])
    result = await vector_search.search_reviews(HEIST_QUERY)
    assert result.found is False
    assert result.reviews == ()
    assert result.min_similarity == vector_search.DEFAULT_MIN_SIMILARITY


@pytest.mark.asyncio
async def test_search_reviews_provider_failure_skips_storage(mocker, mock_fetch) -> None:
    """An embedding failure propagates and no query reaches Postgres."""
    mocker.patch(
        "db.vector_search.generate_embedding",
        new=AsyncMock(side_effect=ProviderError("quota")),
    )
    fetch = mock_fetch([])
    with pytest.raises(ProviderError):
        await vector_search.search_reviews(HEIST_QUERY)
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_reviews_storage_failure_is_wrapped(mocker, mock_embedding) -> None:
    """psycopg errors surface as StorageError."""
    mocker.patch(
        "db.vector_search.fetch_ranked_reviews",
        new=AsyncMock(side_effect=psycopg.OperationalError("connection lost")),
    )
    with pytest.raises(StorageError):
        await vector_search.search_reviews(HEIST_QUERY)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kwargs",
    [
        {"query": ""},
        {"query": "   "},
        {"query": HEIST_QUERY, "limit": 0},
        {"query": HEIST_QUERY, "limit": -3},
        {"query": HEIST_QUERY, "min_similarity": 1.5},
        {"query": HEIST_QUERY, "min_similarity": -0.1},
    ],
)
async def test_search_reviews_rejects_invalid_input(mock_embedding, kwargs) -> None:
    """Bad input is rejected before the embedding provider is called."""
    with pytest.raises(ValidationError):
        await vector_search.search_reviews(**kwargs)
    mock_embedding.assert_not_awaited()


@pytest.mark.asyncio
async def test_search_reviews_timeout_cancels(mocker) -> None:
    """A caller-supplied deadline aborts the in-flight search."""

    async def _slow_embedding(text):
        await asyncio.sleep(5)

    mocker.patch("db.vector_search.generate_embedding", new=_slow_embedding)
    with pytest.raises(asyncio.TimeoutError):
        await vector_search.search_reviews(HEIST_QUERY, timeout=0.01)


# ===============================
#   search_reviews_with_filters
# ===============================

@pytest.mark.asyncio
async def test_filtered_search_applies_no_threshold_by_default(mock_embedding, mock_fetch) -> None:
    """Structured filters are the only constraint unless a cutoff is requested."""
    fetch = mock_fetch([_row("Moonlight", "0.41", genre="Drama", year=2016)])
    filters = ReviewFilters(min_year=2015, genre="Drama", min_rating=7)

    result = await vector_search.search_reviews_with_filters("quiet coming of age story", filters, limit=3)

    _, predicates, limit = fetch.await_args.args
    assert Predicate.MIN_SIMILARITY not in predicates.kinds
    assert predicates.kinds == (
        Predicate.HAS_EMBEDDING,
        Predicate.MIN_YEAR,
        Predicate.GENRE_CONTAINS,
        Predicate.MIN_RATING,
    )
    assert limit == 3
    assert result.filters == filters
    assert result.min_similarity is None
    assert result.reviews[0].similarity_score == 0.41


@pytest.mark.asyncio
async def test_filtered_search_opt_in_threshold(mock_embedding, mock_fetch) -> None:
    """Passing min_similarity adds the same cutoff the unfiltered search uses."""
    fetch = mock_fetch([])
    await vector_search.search_reviews_with_filters(
        "space opera",
        ReviewFilters(genre="Sci-Fi"),
        min_similarity=0.8,
    )
    _, predicates, _ = fetch.await_args.args
    assert Predicate.MIN_SIMILARITY in predicates.kinds
    assert 0.8 in predicates.params()


@pytest.mark.asyncio
async def test_filtered_search_without_filters_still_requires_embedding(mock_embedding, mock_fetch) -> None:
    """filters=None behaves like an empty ReviewFilters."""
    fetch = mock_fetch([])
    result = await vector_search.search_reviews_with_filters("anything")
    _, predicates, limit = fetch.await_args.args
    assert predicates.kinds == (Predicate.HAS_EMBEDDING,)
    assert limit == vector_search.DEFAULT_LIMIT
    assert result.filters == ReviewFilters()


@pytest.mark.asyncio
async def test_recent_high_rated_reviews_defaults(mocker) -> None:
    """The shortcut delegates to the filtered search with year and rating floors."""
    filtered = mocker.patch(
        "db.vector_search.search_reviews_with_filters",
        new=AsyncMock(return_value="result"),
    )
    assert await vector_search.get_recent_high_rated_reviews("thriller") == "result"
    filtered.assert_awaited_once_with(
        "thriller",
        ReviewFilters(min_year=2020, min_rating=8),
        limit=5,
        timeout=None,
    )
