"""
Read-only browse of the movie catalog.

Used by callers to discover valid imdb_ids before submitting a review.
"""

import asyncio
from typing import Optional

from db.filters import build_catalog_predicates
from db.postgres import fetch_movie_catalog, translate_storage_errors
from implementation.classes.review import CatalogMovie
from implementation.classes.schemas import CatalogFilters
from implementation.misc.validation import require_positive_limit

DEFAULT_LIMIT = 20


async def _available_movies(filters: CatalogFilters, limit: int) -> tuple[CatalogMovie, ...]:
    predicates = build_catalog_predicates(filters)
    with translate_storage_errors("movie catalog browse"):
        rows = await fetch_movie_catalog(predicates, limit)
    return tuple(CatalogMovie.from_row(row) for row in rows)


async def get_available_movies(
    filters: Optional[CatalogFilters] = None,
    limit: int = DEFAULT_LIMIT,
    timeout: Optional[float] = None,
) -> tuple[CatalogMovie, ...]:
    """
    List movies available for review, newest release first then by title.

    Args:
        filters: Optional genre substring and release-year bounds.
        limit: Maximum number of movies to return.
        timeout: Optional overall deadline in seconds.
    """
    limit = require_positive_limit(limit)
    return await asyncio.wait_for(
        _available_movies(filters or CatalogFilters(), limit),
        timeout=timeout,
    )
