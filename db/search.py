"""
search.py — Semantic vs. keyword comparison.

Runs the similarity ranking and the lexical keyword search in parallel over
the same review corpus and reports both side by side. Neither search sees
the other's results; each acquires its own pooled connection.
"""

import asyncio
import logging
from typing import Iterable, Optional

from db.lexical_search import search_reviews_by_keywords
from db.vector_search import rank_reviews
from implementation.classes.errors import ValidationError
from implementation.classes.review import SearchComparison
from implementation.misc.helpers import split_keywords
from implementation.misc.validation import require_text

logger = logging.getLogger(__name__)

COMPARISON_LIMIT = 5
COMPARISON_PREVIEW = 3


async def _compare(query: str, tokens: list[str]) -> SearchComparison:
    semantic, keyword = await asyncio.gather(
        rank_reviews(query, COMPARISON_LIMIT),
        search_reviews_by_keywords(tokens, limit=COMPARISON_LIMIT),
    )
    logger.info(
        "Compared search methods for %r: semantic=%d keyword=%d",
        query,
        len(semantic),
        len(keyword),
    )
    return SearchComparison(
        query=query,
        keywords=tuple(tokens),
        semantic_count=len(semantic),
        keyword_count=len(keyword),
        semantic_top=semantic[:COMPARISON_PREVIEW],
        keyword_top=keyword[:COMPARISON_PREVIEW],
    )


async def compare_search_methods(
    query: str,
    keywords: str | Iterable[str],
    timeout: Optional[float] = None,
) -> SearchComparison:
    """
    Compare semantic search with traditional keyword search.

    The semantic side ranks the top 5 reviews with no similarity cutoff; the
    keyword side returns up to 5 reviews containing every keyword. Both
    counts are reported along with the first 3 entries of each.

    Raises:
        ValidationError: On empty query text or no usable keywords.
    """
    query = require_text(query, "query")
    tokens = split_keywords(keywords)
    if not tokens:
        # Checked before gather so no embedding request is spent.
        raise ValidationError("keywords must contain at least one non-blank token")
    return await asyncio.wait_for(_compare(query, tokens), timeout=timeout)
