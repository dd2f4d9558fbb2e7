"""
Review ingestion.

A review is written exactly once, together with the embedding of its text,
inside one transaction that also reads the movie it references. Either the
movie check, the embedding and the insert all succeed and commit, or nothing
is written.
"""

import asyncio
import logging
from typing import Optional, Union

from psycopg import errors as pg_errors

from db.postgres import (
    fetch_movie_for_review,
    insert_review,
    translate_storage_errors,
    unit_of_work,
)
from implementation.classes.errors import ProviderError
from implementation.classes.review import MovieDetails, MovieNotFound, ReviewCreated
from implementation.classes.schemas import NewReview
from implementation.llms.embeddings import generate_embedding
from implementation.misc.helpers import format_vector_literal
from implementation.misc.validation import require_review_rating, require_text

logger = logging.getLogger(__name__)

AddReviewOutcome = Union[ReviewCreated, MovieNotFound]


async def _ingest_review(review: NewReview) -> AddReviewOutcome:
    """
    Run the movie check, embedding and insert as one unit of work.

    The embedding is generated while the transaction is open and the movie
    row is share-locked, so a provider failure or a cancellation rolls back
    the lookup together with everything else.
    """
    with translate_storage_errors("review ingestion"):
        try:
            async with unit_of_work() as uow:
                movie_row = await fetch_movie_for_review(uow, review.imdb_id)
                if movie_row is None:
                    await uow.abort()
                    logger.info("Rejected review: movie '%s' not found", review.imdb_id)
                    return MovieNotFound(imdb_id=review.imdb_id)
                movie = MovieDetails.from_row(movie_row)

                try:
                    embedding = await generate_embedding(review.review_text)
                except ProviderError:
                    logger.exception("Embedding failed while adding review for '%s'", review.imdb_id)
                    raise

                review_id = await insert_review(
                    uow,
                    imdb_id=review.imdb_id,
                    review_title=review.review_title,
                    review_text=review.review_text,
                    review_rating=review.review_rating,
                    review_vector=format_vector_literal(embedding),
                )
        except pg_errors.ForeignKeyViolation:
            # The movie disappeared between the lookup and the insert.
            logger.info("Rejected review: movie '%s' no longer exists", review.imdb_id)
            return MovieNotFound(imdb_id=review.imdb_id)

    logger.info(
        "Added review %d for movie '%s' (IMDB: %s)",
        review_id,
        movie.title,
        movie.imdb_id,
    )
    return ReviewCreated(
        review_id=review_id,
        imdb_id=movie.imdb_id,
        movie_title=movie.title,
        movie_genre=movie.genre,
        movie_year=movie.release_year,
        movie_rating=movie.rating,
    )


async def add_review(
    imdb_id: str,
    review_title: str,
    review_text: str,
    review_rating: int,
    timeout: Optional[float] = None,
) -> AddReviewOutcome:
    """
    Add a new movie review with an automatically generated embedding.

    Inputs are validated before any connection is acquired.

    Args:
        imdb_id: Catalog identifier of the movie being reviewed.
        review_title: Review headline.
        review_text: Full review text; this is what gets embedded.
        review_rating: Integer rating from 1 to 10.
        timeout: Optional overall deadline in seconds. On expiry the
            transaction is rolled back and the connection released.

    Returns:
        ReviewCreated on success, MovieNotFound if *imdb_id* is not in the catalog.

    Raises:
        ValidationError: On empty fields or a rating outside 1-10.
        ProviderError: If the review text could not be embedded.
        StorageError: On database or connection pool failure.
    """
    review = NewReview(
        imdb_id=require_text(imdb_id, "imdb_id"),
        review_title=require_text(review_title, "review_title"),
        review_text=require_text(review_text, "review_text"),
        review_rating=require_review_rating(review_rating),
    )
    return await asyncio.wait_for(_ingest_review(review), timeout=timeout)
