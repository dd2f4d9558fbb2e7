"""
Embedding provider for review and query text.

Wraps the OpenAI embeddings endpoint behind a single coroutine that either
returns a vector of exactly EMBEDDING_DIMENSIONS floats or raises
ProviderError. The stored review vectors were produced by the same model, so
the dimension check guards against a misconfigured model silently writing
incomparable vectors.
"""

import asyncio
import logging
import os

from dotenv import load_dotenv
from openai import AsyncOpenAI, OpenAIError

from implementation.classes.errors import ProviderError

# Load environment variables (for API key)
load_dotenv()

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))
EMBEDDING_TIMEOUT_SECONDS = float(os.getenv("EMBEDDING_TIMEOUT_SECONDS", "10"))


# ===============================
#           Client
# ===============================

_openai_client: AsyncOpenAI | None = None


def get_openai_client() -> AsyncOpenAI:
    """
    Return the shared async OpenAI client, creating it on first use.

    Retries are disabled: retry policy belongs to the caller, not this service.
    """
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(
            api_key=os.getenv("OPENAI_API_KEY"),
            max_retries=0,
        )
    return _openai_client


async def close_openai_client() -> None:
    """Call at application shutdown."""
    global _openai_client
    if _openai_client is not None:
        await _openai_client.close()
    _openai_client = None


# ===============================
#       Embedding Generation
# ===============================

async def generate_embedding(
    text: str,
    timeout: float | None = EMBEDDING_TIMEOUT_SECONDS,
) -> list[float]:
    """
    Embed *text* with the configured model.

    The call is wrapped in its own timeout so a slow provider can be
    cancelled independently of any surrounding database transaction.

    Args:
        text: Non-empty text to embed.
        timeout: Seconds to wait for the provider; None waits indefinitely.

    Returns:
        The embedding as a list of EMBEDDING_DIMENSIONS floats.

    Raises:
        ProviderError: On empty input, API errors, timeouts, or a vector of
            the wrong dimension.
    """
    if not text or not text.strip():
        raise ProviderError("Cannot embed empty text")

    try:
        client = get_openai_client()
        response = await asyncio.wait_for(
            client.embeddings.create(model=EMBEDDING_MODEL, input=text),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        logger.warning("Embedding request timed out after %ss", timeout)
        raise ProviderError(f"Embedding request timed out after {timeout}s") from e
    except OpenAIError as e:
        logger.warning("Embedding request failed: %s", type(e).__name__)
        raise ProviderError(f"Embedding request failed: {e}") from e

    if not response.data:
        raise ProviderError("Embedding response contained no vectors")

    embedding = list(response.data[0].embedding)
    if len(embedding) != EMBEDDING_DIMENSIONS:
        raise ProviderError(
            f"Embedding has {len(embedding)} dimensions, expected {EMBEDDING_DIMENSIONS}"
        )
    return embedding
