"""
Keyword (lexical) search over review text.

Every keyword must appear as a case-insensitive substring of the review
text. Results are unranked and come back in storage order.
"""

import asyncio
import logging
from typing import Iterable, Optional

from db.postgres import fetch_keyword_matches, translate_storage_errors
from implementation.classes.errors import ValidationError
from implementation.classes.review import KeywordMatch
from implementation.misc.helpers import split_keywords
from implementation.misc.sql_like import contains_pattern
from implementation.misc.validation import require_positive_limit

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


async def _keyword_matches(tokens: list[str], limit: int) -> tuple[KeywordMatch, ...]:
    """Run the ANDed ILIKE query for already-split, non-empty *tokens*."""
    patterns = [contains_pattern(token) for token in tokens]
    with translate_storage_errors("review keyword search"):
        rows = await fetch_keyword_matches(patterns, limit)
    logger.debug("Keyword search %s matched %d reviews", tokens, len(rows))
    return tuple(KeywordMatch.from_row(row) for row in rows)


async def search_reviews_by_keywords(
    keywords: str | Iterable[str],
    limit: int = DEFAULT_LIMIT,
    timeout: Optional[float] = None,
) -> tuple[KeywordMatch, ...]:
    """
    Find reviews whose text contains every keyword.

    Args:
        keywords: A space-separated string or a list of strings; each entry
            is split on whitespace.
        limit: Maximum number of reviews to return.
        timeout: Optional overall deadline in seconds.

    Raises:
        ValidationError: If no keyword tokens remain after splitting.
    """
    tokens = split_keywords(keywords)
    if not tokens:
        raise ValidationError("keywords must contain at least one non-blank token")
    limit = require_positive_limit(limit)
    return await asyncio.wait_for(_keyword_matches(tokens, limit), timeout=timeout)
