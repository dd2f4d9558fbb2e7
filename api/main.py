import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from db.ingest_review import add_review
from db.lexical_search import search_reviews_by_keywords
from db.movie_catalog import get_available_movies
from db.postgres import pool, check_postgres
from db.search import compare_search_methods
from db.vector_search import (
    get_recent_high_rated_reviews,
    search_reviews,
    search_reviews_with_filters,
)
from implementation.classes.errors import ProviderError, StorageError, ValidationError
from implementation.classes.review import MovieNotFound
from implementation.classes.schemas import CatalogFilters, NewReview, ReviewFilters
from implementation.llms.embeddings import close_openai_client

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler for connection pool lifecycle management.

    Opens the Postgres connection pool on startup and closes it (and the
    embedding client) gracefully on shutdown.
    """
    await pool.open()
    # Fast-fail if Postgres is unreachable
    await pool.check()
    yield
    await close_openai_client()
    await pool.close()


app = FastAPI(lifespan=lifespan)


class FilteredSearchRequest(BaseModel):
    query: str
    filters: ReviewFilters = Field(default_factory=ReviewFilters)
    limit: int = 10
    min_similarity: Optional[float] = None


# ===============================
#        ERROR HANDLERS
# ===============================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "validation_error", "detail": str(exc)})


@app.exception_handler(ProviderError)
@app.exception_handler(StorageError)
async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Infrastructure failures are already logged where they happen; callers get a generic message."""
    logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"error": "service_unavailable", "detail": "The request could not be completed. Try again later."},
    )


@app.exception_handler(asyncio.TimeoutError)
async def timeout_error_handler(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
    logger.warning("Request timed out after %ss on %s", REQUEST_TIMEOUT_SECONDS, request.url.path)
    return JSONResponse(status_code=504, content={"error": "timeout", "detail": "The request timed out."})


# ===============================
#          ENDPOINTS
# ===============================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns a dictionary with status for each service:
    - postgres: 'ok' or error message (checked via connection pool)
    """
    return {"postgres": await check_postgres()}


@app.get("/reviews/search")
async def search_reviews_endpoint(
    query: str,
    limit: int = 10,
    min_similarity: float = 0.7,
):
    return await search_reviews(query, limit, min_similarity, timeout=REQUEST_TIMEOUT_SECONDS)


@app.post("/reviews/search/filtered")
async def filtered_search_endpoint(request: FilteredSearchRequest):
    return await search_reviews_with_filters(
        request.query,
        request.filters,
        limit=request.limit,
        min_similarity=request.min_similarity,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )


@app.get("/reviews/recent")
async def recent_high_rated_endpoint(
    movie_type: str,
    min_year: int = 2020,
    min_rating: int = 8,
    limit: int = 5,
):
    return await get_recent_high_rated_reviews(
        movie_type,
        min_year=min_year,
        min_rating=min_rating,
        limit=limit,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )


@app.get("/reviews/keywords")
async def keyword_search_endpoint(keywords: list[str] = Query(...), limit: int = 5):
    return await search_reviews_by_keywords(keywords, limit=limit, timeout=REQUEST_TIMEOUT_SECONDS)


@app.get("/reviews/compare")
async def compare_endpoint(query: str, keywords: list[str] = Query(...)):
    return await compare_search_methods(query, keywords, timeout=REQUEST_TIMEOUT_SECONDS)


@app.get("/movies")
async def available_movies_endpoint(
    genre: Optional[str] = None,
    min_year: Optional[int] = None,
    max_year: Optional[int] = None,
    limit: int = 20,
):
    filters = CatalogFilters(genre=genre, min_year=min_year, max_year=max_year)
    return await get_available_movies(filters, limit=limit, timeout=REQUEST_TIMEOUT_SECONDS)


@app.post("/reviews", status_code=201)
async def add_review_endpoint(review: NewReview):
    outcome = await add_review(
        review.imdb_id,
        review.review_title,
        review.review_text,
        review.review_rating,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )
    if isinstance(outcome, MovieNotFound):
        return JSONResponse(
            status_code=404,
            content={"error": "movie_not_found", "imdb_id": outcome.imdb_id},
        )
    return outcome
