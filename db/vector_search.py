"""
vector_search.py — Similarity ranking of movie reviews.

Flow for every search:
  1. Validate the query text, limit and threshold.
  2. Embed the query text (own timeout, see implementation.llms.embeddings).
  3. Build the conjunctive predicate set (db.filters).
  4. Rank stored review embeddings by cosine distance in Postgres and map
     each row into a RankedReview.

Unfiltered search always applies a minimum-similarity cutoff. Filtered
search applies one only when the caller passes min_similarity; the default
keeps the structured filters as the sole constraint.
"""

import asyncio
import logging
import time
from typing import Optional

from db.filters import PredicateSet, build_review_predicates
from db.postgres import fetch_ranked_reviews, translate_storage_errors
from implementation.classes.review import RankedReview, RankedSearchResult
from implementation.classes.schemas import ReviewFilters
from implementation.llms.embeddings import generate_embedding
from implementation.misc.helpers import format_vector_literal
from implementation.misc.validation import (
    require_positive_limit,
    require_similarity_threshold,
    require_text,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_MIN_SIMILARITY = 0.7


# ===============================
#     SHARED RANKING STEP
# ===============================

async def rank_reviews(
    query: str,
    limit: int,
    min_similarity: Optional[float] = None,
    filters: Optional[ReviewFilters] = None,
) -> tuple[RankedReview, ...]:
    """
    Embed *query* and return reviews ordered by decreasing similarity.

    Inputs are assumed validated. ProviderError propagates from the embedding
    step before any connection is acquired; psycopg failures surface as
    StorageError.
    """
    start = time.perf_counter()
    embedding = await generate_embedding(query)
    predicates: PredicateSet = build_review_predicates(filters, min_similarity=min_similarity)

    with translate_storage_errors("review similarity search"):
        rows = await fetch_ranked_reviews(format_vector_literal(embedding), predicates, limit)

    reviews = tuple(RankedReview.from_row(row) for row in rows)
    logger.info(
        "Ranked %d reviews (limit=%d, predicates=%d) in %.1fms",
        len(reviews),
        limit,
        len(predicates),
        (time.perf_counter() - start) * 1000,
    )
    return reviews


# ===============================
#        PUBLIC METHODS
# ===============================

async def search_reviews(
    query: str,
    limit: int = DEFAULT_LIMIT,
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
    timeout: Optional[float] = None,
) -> RankedSearchResult:
    """
    Find reviews semantically similar to a natural-language query.

    Args:
        query: Natural language query, e.g. "action movies with great special effects".
        limit: Maximum number of reviews to return.
        min_similarity: Rows with similarity below this value are dropped.
        timeout: Optional overall deadline in seconds.

    Returns:
        RankedSearchResult with at most *limit* reviews, each with
        similarity >= *min_similarity*, most similar first. `found` is False
        when nothing passed the threshold.
    """
    query = require_text(query, "query")
    limit = require_positive_limit(limit)
    min_similarity = require_similarity_threshold(min_similarity)

    reviews = await asyncio.wait_for(
        rank_reviews(query, limit, min_similarity=min_similarity),
        timeout=timeout,
    )
    return RankedSearchResult(query=query, reviews=reviews, min_similarity=min_similarity)


async def search_reviews_with_filters(
    query: str,
    filters: Optional[ReviewFilters] = None,
    limit: int = DEFAULT_LIMIT,
    min_similarity: Optional[float] = None,
    timeout: Optional[float] = None,
) -> RankedSearchResult:
    """
    Similarity search restricted by release year, genre and review rating.

    No similarity cutoff applies unless *min_similarity* is given.
    """
    query = require_text(query, "query")
    limit = require_positive_limit(limit)
    if min_similarity is not None:
        min_similarity = require_similarity_threshold(min_similarity)
    filters = filters or ReviewFilters()

    reviews = await asyncio.wait_for(
        rank_reviews(query, limit, min_similarity=min_similarity, filters=filters),
        timeout=timeout,
    )
    return RankedSearchResult(
        query=query,
        reviews=reviews,
        min_similarity=min_similarity,
        filters=filters,
    )


async def get_recent_high_rated_reviews(
    movie_type: str,
    min_year: int = 2020,
    min_rating: int = 8,
    limit: int = 5,
    timeout: Optional[float] = None,
) -> RankedSearchResult:
    """
    Recent, well-rated reviews for a kind of movie (e.g. 'thriller', 'romance').

    Shortcut for a filtered search with a minimum year and minimum review rating.
    """
    return await search_reviews_with_filters(
        movie_type,
        ReviewFilters(min_year=min_year, min_rating=min_rating),
        limit=limit,
        timeout=timeout,
    )
