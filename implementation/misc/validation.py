"""
Input checks run before any embedding or storage work starts.

Each helper returns the (possibly normalized) value or raises ValidationError.
"""

from implementation.classes.errors import ValidationError

MIN_REVIEW_RATING = 1
MAX_REVIEW_RATING = 10


def require_text(value: str, field_name: str) -> str:
    """Reject None, empty and whitespace-only strings; return the stripped value."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} must not be empty")
    return str(value).strip()


def require_positive_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")
    return limit


def require_similarity_threshold(min_similarity: float) -> float:
    """Similarity thresholds are fractions in [0.0, 1.0]."""
    if isinstance(min_similarity, bool) or not isinstance(min_similarity, (int, float)):
        raise ValidationError(f"min_similarity must be a number, got {min_similarity!r}")
    if not 0.0 <= min_similarity <= 1.0:
        raise ValidationError(f"min_similarity must be between 0.0 and 1.0, got {min_similarity}")
    return float(min_similarity)


def require_review_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError(f"review_rating must be an integer, got {rating!r}")
    if not MIN_REVIEW_RATING <= rating <= MAX_REVIEW_RATING:
        raise ValidationError(
            f"review_rating must be between {MIN_REVIEW_RATING} and {MAX_REVIEW_RATING}, got {rating}"
        )
    return rating
