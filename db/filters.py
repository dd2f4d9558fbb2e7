"""
Typed predicate builder for review and catalog queries.

Every WHERE fragment the service can emit is a member of the closed
`Predicate` enum. Builders pick members and bind values; they never
concatenate caller text into SQL. A PredicateSet renders to a conjunctive
WHERE clause plus the positional parameters in placeholder order.

Table aliases assumed by the fragments:
    mr  -> movie_reviews
    m   -> movies
    q   -> the query_embedding CTE (similarity predicates only)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from implementation.classes.schemas import CatalogFilters, ReviewFilters
from implementation.misc.sql_like import contains_pattern


class Predicate(Enum):
    """Supported WHERE-clause fragments."""
    HAS_EMBEDDING = "mr.review_embedding IS NOT NULL"
    MIN_SIMILARITY = "1 - (mr.review_embedding <=> q.embedding) >= %s"
    MIN_YEAR = "m.release_year >= %s"
    MAX_YEAR = "m.release_year <= %s"
    GENRE_CONTAINS = r"m.genre ILIKE %s ESCAPE '\'"
    MIN_RATING = "mr.review_rating >= %s"

    @property
    def sql(self) -> str:
        return self.value

    @property
    def binds_value(self) -> bool:
        return "%s" in self.value


@dataclass(frozen=True, slots=True)
class BoundPredicate:
    """A predicate kind paired with the value bound to its placeholder (if any)."""
    kind: Predicate
    value: object = None

    def __post_init__(self) -> None:
        if self.kind.binds_value and self.value is None:
            raise ValueError(f"{self.kind.name} requires a bound value")


@dataclass(frozen=True, slots=True)
class PredicateSet:
    """An ordered conjunction of bound predicates."""
    predicates: tuple[BoundPredicate, ...] = ()

    def __len__(self) -> int:
        return len(self.predicates)

    @property
    def kinds(self) -> tuple[Predicate, ...]:
        return tuple(p.kind for p in self.predicates)

    def where_clause(self) -> str:
        """Render the predicates joined with AND, or TRUE when empty."""
        if not self.predicates:
            return "TRUE"
        return " AND ".join(p.kind.sql for p in self.predicates)

    def params(self) -> list:
        """Bound values in the same order their placeholders appear in where_clause()."""
        return [p.value for p in self.predicates if p.kind.binds_value]


# ===============================
#           BUILDERS
# ===============================

def _year_and_genre_predicates(
    min_year: Optional[int],
    max_year: Optional[int],
    genre: Optional[str],
) -> list[BoundPredicate]:
    predicates: list[BoundPredicate] = []
    if min_year is not None:
        predicates.append(BoundPredicate(Predicate.MIN_YEAR, min_year))
    if max_year is not None:
        predicates.append(BoundPredicate(Predicate.MAX_YEAR, max_year))
    if genre:
        predicates.append(BoundPredicate(Predicate.GENRE_CONTAINS, contains_pattern(genre)))
    return predicates


def build_review_predicates(
    filters: Optional[ReviewFilters] = None,
    min_similarity: Optional[float] = None,
) -> PredicateSet:
    """
    Build the predicate set for a similarity search over reviews.

    "Embedding present" is always the first predicate, so a search with no
    filters still only ranks reviews that have a vector. Each supplied
    constraint adds exactly one predicate; absent constraints add none.

    Args:
        filters: Optional structured constraints.
        min_similarity: Optional similarity cutoff; requires the query to
            expose the query embedding as ``q.embedding``.
    """
    predicates = [BoundPredicate(Predicate.HAS_EMBEDDING)]

    if min_similarity is not None:
        predicates.append(BoundPredicate(Predicate.MIN_SIMILARITY, min_similarity))

    if filters is not None:
        predicates.extend(
            _year_and_genre_predicates(filters.min_year, filters.max_year, filters.genre)
        )
        if filters.min_rating is not None:
            predicates.append(BoundPredicate(Predicate.MIN_RATING, filters.min_rating))

    return PredicateSet(tuple(predicates))


def build_catalog_predicates(filters: Optional[CatalogFilters] = None) -> PredicateSet:
    """Build the predicate set for browsing movies. Empty filters render as TRUE."""
    if filters is None:
        return PredicateSet()
    return PredicateSet(
        tuple(_year_and_genre_predicates(filters.min_year, filters.max_year, filters.genre))
    )
