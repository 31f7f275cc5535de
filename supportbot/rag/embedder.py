"""
Embedder module for generating OpenAI embeddings.

Embeds the whole knowledge base in one batched request at startup and
individual user queries at retrieval time.
"""

import logging
import os
from typing import Awaitable, Callable, List, Optional

from openai import AsyncOpenAI

from .. import config

logger = logging.getLogger(__name__)

# Any async callable with this shape can stand in for the OpenAI embedder
EmbedFn = Callable[[List[str]], Awaitable[List[List[float]]]]


def _get_openai_client() -> AsyncOpenAI:
    """Get an AsyncOpenAI client using the configured API key.

    Returns:
        AsyncOpenAI client instance.

    Raises:
        ValueError: If OPENAI_API_KEY is not set.
    """
    api_key = os.environ.get("OPENAI_API_KEY") or config.OPENAI_API_KEY
    if not api_key:
        raise ValueError("OPENAI_API_KEY not found in environment or supportbot.config")

    return AsyncOpenAI(api_key=api_key)


async def embed_texts(
    texts: List[str],
    client: Optional[AsyncOpenAI] = None,
    model: Optional[str] = None,
) -> List[List[float]]:
    """Generate embeddings for a list of texts using OpenAI API.

    Args:
        texts: List of text strings to embed.
        client: Optional pre-existing AsyncOpenAI client.
        model: Embedding model, defaults to config.EMBEDDING_MODEL.

    Returns:
        List of embedding vectors (each a list of floats), in input order.
    """
    if client is None:
        client = _get_openai_client()
    model = model or config.EMBEDDING_MODEL

    # OpenAI supports batching up to 2048 inputs per request
    response = await client.embeddings.create(model=model, input=texts)

    embeddings = [item.embedding for item in response.data]
    logger.info(f"[EMBEDDER] Generated {len(embeddings)} embeddings ({model})")
    return embeddings


async def embed_query(
    query: str,
    client: Optional[AsyncOpenAI] = None,
    model: Optional[str] = None,
) -> List[float]:
    """Generate an embedding for a single query string."""
    if client is None:
        client = _get_openai_client()

    response = await client.embeddings.create(
        model=model or config.EMBEDDING_MODEL,
        input=query,
    )

    return response.data[0].embedding


class OpenAIEmbedder:
    """Binds a client and model into the `EmbedFn` shape used by the index and retriever.

    The client is created lazily so a missing API key only surfaces when an
    embedding is actually requested.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or config.EMBEDDING_MODEL

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = _get_openai_client()
        return self._client

    async def __call__(self, texts: List[str]) -> List[List[float]]:
        if len(texts) == 1:
            return [await embed_query(texts[0], client=self.client, model=self.model)]
        return await embed_texts(texts, client=self.client, model=self.model)
