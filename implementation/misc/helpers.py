"""
Small helpers shared by the search and ingestion modules.
"""

from typing import Iterable, Sequence


def format_vector_literal(embedding: Sequence[float]) -> str:
    """
    Render an embedding as a pgvector text literal.

    The result is bound as a regular text parameter and cast with
    ``%s::vector`` in SQL.

    Examples:
        >>> format_vector_literal([0.5, -1, 2.25])
        '[0.5,-1.0,2.25]'
    """
    return "[" + ",".join(str(float(v)) for v in embedding) + "]"


def split_keywords(keywords: str | Iterable[str]) -> list[str]:
    """
    Flatten keyword input into individual whitespace-separated tokens.

    Accepts a single space-separated string or any iterable of strings (each
    of which may itself contain spaces). Empty tokens are dropped and
    duplicates removed while preserving first-seen order.

    Examples:
        >>> split_keywords("ocean  submarine")
        ['ocean', 'submarine']
        >>> split_keywords(["deep sea", "ocean", "sea"])
        ['deep', 'sea', 'ocean']
    """
    if isinstance(keywords, str):
        keywords = [keywords]
    tokens: list[str] = []
    for chunk in keywords:
        tokens.extend(chunk.split())
    return list(dict.fromkeys(tokens))
