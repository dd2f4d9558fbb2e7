"""
Database connection pool and query methods for the review search service.

This module provides a psycopg v3 AsyncConnectionPool configured for production use,
the private helpers every read goes through, the UnitOfWork used by review
ingestion, and all SQL text issued against the `movies` and `movie_reviews`
tables.
"""

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Sequence

import psycopg
from psycopg_pool import AsyncConnectionPool

from db.filters import PredicateSet
from implementation.classes.errors import StorageError

logger = logging.getLogger(__name__)


def _build_conninfo() -> str:
    """
    Build a libpq connection string from environment variables.

    Returns:
        A connection string in the format expected by psycopg.
    """
    return (
        f"host={os.getenv('POSTGRES_HOST')} "
        f"dbname={os.getenv('POSTGRES_DB')} "
        f"user={os.getenv('POSTGRES_USER')} "
        f"password={os.getenv('POSTGRES_PASSWORD')}"
    )


# The pool is created inert (open=False) and opened during FastAPI startup
# via the lifespan handler.
pool = AsyncConnectionPool(
    conninfo=_build_conninfo(),
    min_size=int(os.getenv("POSTGRES_POOL_MIN_SIZE", "2")),
    max_size=int(os.getenv("POSTGRES_POOL_MAX_SIZE", "10")),
    max_lifetime=1800,    # Recycle connections after 30 minutes
    max_idle=300,         # Close idle connections above min_size after 5 minutes
    timeout=5.0,          # Wait up to 5s for a connection before raising PoolTimeout
    open=False,
)


# ===============================
#     PRIVATE BASE METHODS
# ===============================

async def _execute_read(query: str, params: Sequence[object] | None = None) -> list[tuple]:
    """
    Execute a read query and return all rows.

    Args:
        query: SQL query string with parameter placeholders (%s).
        params: Optional sequence of parameters to bind to the query.

    Returns:
        List of tuples, where each tuple represents a row.
    """
    async with pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    """
    Re-raise psycopg and pool failures inside the block as StorageError.

    PoolTimeout is a psycopg.OperationalError, so exhausting the pool is
    reported the same way as a broken connection.
    """
    try:
        yield
    except psycopg.Error as e:
        logger.exception("Storage failure during %s", operation)
        raise StorageError(f"Storage failure during {operation}: {type(e).__name__}") from e


# ===============================
#         UNIT OF WORK
# ===============================

class UnitOfWork:
    """
    One pooled connection holding one open transaction.

    Obtain instances through `unit_of_work()`; the context manager owns
    commit and rollback. Callers that decide to stop early without an error
    (e.g. the target row does not exist) call `abort()` and simply return.
    """

    def __init__(self, conn) -> None:
        self.conn = conn
        self.aborted = False

    async def fetch_one(self, query: str, params: Sequence[object] | None = None) -> tuple | None:
        async with self.conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchone()

    async def abort(self) -> None:
        """Roll back everything done so far; the scope will not commit on exit."""
        await self.conn.rollback()
        self.aborted = True


@asynccontextmanager
async def unit_of_work() -> AsyncIterator[UnitOfWork]:
    """
    Open a transaction scope on a pooled connection.

    Commits on clean exit unless aborted. Any exception raised inside the
    block, including asyncio.CancelledError from a timeout, rolls the whole
    transaction back before the connection returns to the pool.
    """
    async with pool.connection() as conn:
        uow = UnitOfWork(conn)
        try:
            yield uow
        except BaseException:
            await conn.rollback()
            raise
        if not uow.aborted:
            await conn.commit()


# ===============================
#        PUBLIC METHODS
# ===============================

async def check_postgres() -> str:
    """
    Ping Postgres via the pool to verify connectivity.

    Used by the /health endpoint.

    Returns:
        'ok' if the check succeeds, otherwise an error message string.
    """
    try:
        async with pool.connection() as conn:
            await conn.execute("SELECT 1")
        return "ok"
    except Exception as e:
        return str(e)


# ===============================
#        SEARCH QUERIES
# ===============================

_RANKED_REVIEWS_QUERY = """\
WITH query_embedding AS (
    SELECT %s::vector AS embedding
)
SELECT
    m.title,
    mr.review_title,
    mr.review_rating,
    m.genre,
    m.release_year,
    ROUND((1 - (mr.review_embedding <=> q.embedding))::numeric, 4) AS similarity_score
FROM movie_reviews mr
JOIN movies m ON m.imdb_id = mr.imdb_id
CROSS JOIN query_embedding q
WHERE {where_clause}
ORDER BY mr.review_embedding <=> q.embedding
LIMIT %s"""


async def fetch_ranked_reviews(
    query_vector: str,
    predicates: PredicateSet,
    limit: int,
) -> list[tuple]:
    """
    Rank reviews by cosine distance to *query_vector* under *predicates*.

    Args:
        query_vector: pgvector text literal of the query embedding.
        predicates: Conjunctive filter set; must include HAS_EMBEDDING.
        limit: Maximum rows to return.

    Returns:
        Rows of (movie_title, review_title, review_rating, genre,
        release_year, similarity_score), nearest first.
    """
    query = _RANKED_REVIEWS_QUERY.format(where_clause=predicates.where_clause())
    params = [query_vector, *predicates.params(), limit]
    return await _execute_read(query, params)


async def fetch_keyword_matches(like_patterns: list[str], limit: int) -> list[tuple]:
    """
    Find reviews whose text matches every ILIKE pattern.

    Args:
        like_patterns: Escaped ``%token%`` patterns, ANDed together.
        limit: Maximum rows to return.

    Returns:
        Rows of (movie_title, review_title, review_rating) in storage order.
    """
    conditions = " AND ".join([r"mr.review_text ILIKE %s ESCAPE '\'"] * len(like_patterns))
    query = f"""\
SELECT
    m.title,
    mr.review_title,
    mr.review_rating
FROM movie_reviews mr
JOIN movies m ON m.imdb_id = mr.imdb_id
WHERE {conditions}
LIMIT %s"""
    return await _execute_read(query, [*like_patterns, limit])


_MOVIE_CATALOG_QUERY = """\
SELECT
    m.imdb_id,
    m.title,
    m.genre,
    m.release_year,
    m.rating,
    (SELECT COUNT(*) FROM movie_reviews mr WHERE mr.imdb_id = m.imdb_id) AS review_count
FROM movies m
WHERE {where_clause}
ORDER BY m.release_year DESC, m.title ASC
LIMIT %s"""


async def fetch_movie_catalog(predicates: PredicateSet, limit: int) -> list[tuple]:
    """
    List catalog movies matching *predicates*, newest first then by title.

    Returns:
        Rows of (imdb_id, title, genre, release_year, rating, review_count).
    """
    query = _MOVIE_CATALOG_QUERY.format(where_clause=predicates.where_clause())
    return await _execute_read(query, [*predicates.params(), limit])


# ===============================
#       INGESTION QUERIES
# ===============================

async def fetch_movie_for_review(uow: UnitOfWork, imdb_id: str) -> tuple | None:
    """
    Read one movie inside *uow*, share-locking it until the transaction ends.

    The lock keeps the movie from being deleted between this check and the
    review insert.

    Returns:
        (imdb_id, title, genre, release_year, rating) or None.
    """
    query = """
    SELECT imdb_id, title, genre, release_year, rating
    FROM movies
    WHERE imdb_id = %s
    FOR SHARE;
    """
    return await uow.fetch_one(query, (imdb_id,))


async def insert_review(
    uow: UnitOfWork,
    imdb_id: str,
    review_title: str,
    review_text: str,
    review_rating: int,
    review_vector: str,
) -> int:
    """
    Insert one review with its embedding inside *uow*.

    Args:
        review_vector: pgvector text literal of the review text embedding.

    Returns:
        The storage-assigned review_id.
    """
    query = """
    INSERT INTO movie_reviews (
        imdb_id,
        review_title,
        review_text,
        review_rating,
        review_embedding
    )
    VALUES (%s, %s, %s, %s, %s::vector)
    RETURNING review_id;
    """
    row = await uow.fetch_one(
        query,
        (imdb_id, review_title, review_text, review_rating, review_vector),
    )
    if row is None:
        raise StorageError("Review insert returned no review_id")
    return int(row[0])
