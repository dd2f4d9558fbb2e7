"""
Pydantic schemas for review search requests.

These models describe caller-supplied inputs (filters and new reviews). The
result shapes live in implementation.classes.review as frozen dataclasses.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ReviewFilters(BaseModel):
    """
    Optional structured constraints layered on top of a similarity search.

    Every field is independent. A field left as None adds no predicate.
    """
    model_config = ConfigDict(frozen=True)

    min_year: Optional[int] = Field(
        default=None,
        description="Earliest release year to include (inclusive).",
    )
    max_year: Optional[int] = Field(
        default=None,
        description="Latest release year to include (inclusive).",
    )
    genre: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring matched against the movie genre, e.g. 'Drama'.",
    )
    min_rating: Optional[int] = Field(
        default=None,
        description="Minimum review rating (1-10) to include.",
    )

    @field_validator("genre")
    @classmethod
    def _normalize_genre(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    def is_empty(self) -> bool:
        return (
            self.min_year is None
            and self.max_year is None
            and self.genre is None
            and self.min_rating is None
        )


class CatalogFilters(BaseModel):
    """Optional constraints for browsing the movie catalog."""
    model_config = ConfigDict(frozen=True)

    genre: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring matched against the movie genre.",
    )
    min_year: Optional[int] = Field(default=None, description="Earliest release year (inclusive).")
    max_year: Optional[int] = Field(default=None, description="Latest release year (inclusive).")

    @field_validator("genre")
    @classmethod
    def _normalize_genre(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class NewReview(BaseModel):
    """A review submitted for ingestion. Range checks happen in db.ingest_review."""
    imdb_id: str = Field(..., description="Catalog identifier of the reviewed movie, e.g. 'tt1234567'.")
    review_title: str = Field(..., description="Review headline.")
    review_text: str = Field(..., description="Full review text. This is what gets embedded.")
    review_rating: int = Field(..., description="Rating from 1 to 10.")
