"""
Shared SQL LIKE helpers.

Every ILIKE predicate in the service (genre filters and review keyword
search) builds its pattern here so escaping stays consistent.
"""

import re

# Pre-compiled regex for escaping LIKE pattern metacharacters.
_LIKE_ESCAPE_RE = re.compile(r"([\\%_])")


def escape_like(value: str) -> str:
    r"""
    Escape SQL LIKE metacharacters so *value* is treated as a literal substring.

    Uses ``\`` as the SQL LIKE escape character; pair with ``ESCAPE '\'``.
    """
    return _LIKE_ESCAPE_RE.sub(r"\\\1", value)


def contains_pattern(value: str) -> str:
    """Build a ``%value%`` pattern that matches *value* anywhere in a column."""
    return f"%{escape_like(value)}%"
