"""
Typed result records for review search, ingestion and catalog browsing.

One record per query shape. Every record is a frozen dataclass so rows can
be handed to the API layer (or any other caller) without runtime-typed
field access.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from implementation.classes.schemas import ReviewFilters


def _optional_float(value) -> Optional[float]:
    """Convert a nullable NUMERIC column value to float."""
    return float(value) if value is not None else None


@dataclass(frozen=True, slots=True)
class MovieDetails:
    """Catalog attributes of one movie as read inside an ingestion transaction."""
    imdb_id: str
    title: str
    genre: Optional[str]
    release_year: int
    rating: Optional[float]

    @classmethod
    def from_row(cls, row: tuple) -> "MovieDetails":
        imdb_id, title, genre, release_year, rating = row
        return cls(
            imdb_id=imdb_id,
            title=title,
            genre=genre,
            release_year=int(release_year),
            rating=_optional_float(rating),
        )


@dataclass(frozen=True, slots=True)
class RankedReview:
    """
    One review row returned by a similarity search.

    similarity_score is 1 - cosine_distance between the query embedding and
    the stored review embedding, rounded to 4 decimal places.
    """
    movie_title: str
    review_title: str
    review_rating: Optional[int]
    genre: Optional[str]
    release_year: int
    similarity_score: float

    @classmethod
    def from_row(cls, row: tuple) -> "RankedReview":
        movie_title, review_title, review_rating, genre, release_year, similarity = row
        if isinstance(similarity, Decimal):
            similarity = float(similarity)
        return cls(
            movie_title=movie_title,
            review_title=review_title,
            review_rating=int(review_rating) if review_rating is not None else None,
            genre=genre,
            release_year=int(release_year),
            similarity_score=round(float(similarity), 4),
        )


@dataclass(frozen=True, slots=True)
class KeywordMatch:
    """One review row returned by the lexical keyword search (unranked)."""
    movie_title: str
    review_title: str
    review_rating: Optional[int]

    @classmethod
    def from_row(cls, row: tuple) -> "KeywordMatch":
        movie_title, review_title, review_rating = row
        return cls(
            movie_title=movie_title,
            review_title=review_title,
            review_rating=int(review_rating) if review_rating is not None else None,
        )


@dataclass(frozen=True, slots=True)
class CatalogMovie:
    """One movie row from the catalog browse, with its current review count."""
    imdb_id: str
    title: str
    genre: Optional[str]
    release_year: int
    rating: Optional[float]
    review_count: int

    @classmethod
    def from_row(cls, row: tuple) -> "CatalogMovie":
        imdb_id, title, genre, release_year, rating, review_count = row
        return cls(
            imdb_id=imdb_id,
            title=title,
            genre=genre,
            release_year=int(release_year),
            rating=_optional_float(rating),
            review_count=int(review_count),
        )


@dataclass(frozen=True, slots=True)
class RankedSearchResult:
    """
    Ordered similarity search output.

    An empty `reviews` tuple is the explicit "nothing passed the filters"
    signal. Provider and storage failures raise instead of returning.
    """
    query: str
    reviews: tuple[RankedReview, ...]
    min_similarity: Optional[float] = None
    filters: Optional[ReviewFilters] = None

    @property
    def found(self) -> bool:
        return bool(self.reviews)


@dataclass(frozen=True, slots=True)
class ReviewCreated:
    """Successful ingestion outcome with the reviewed movie's attributes."""
    review_id: int
    imdb_id: str
    movie_title: str
    movie_genre: Optional[str]
    movie_year: int
    movie_rating: Optional[float]


@dataclass(frozen=True, slots=True)
class MovieNotFound:
    """Ingestion outcome when the target movie does not exist. Nothing was written."""
    imdb_id: str


@dataclass(frozen=True, slots=True)
class SearchComparison:
    """Semantic and keyword search results over the same corpus, side by side."""
    query: str
    keywords: tuple[str, ...]
    semantic_count: int
    keyword_count: int
    semantic_top: tuple[RankedReview, ...] = field(default_factory=tuple)
    keyword_top: tuple[KeywordMatch, ...] = field(default_factory=tuple)
