"""
Retriever module for knowledge base context at query time.

Embeds the user message, looks up the top-K most similar knowledge records
in the vector index, and renders them as a context block ready for
injection into the prompt.
"""

import logging
from typing import Sequence

from .. import config
from ..errors import RetrievalFailure
from ..models.chat_models import KnowledgeRecord
from .embedder import EmbedFn
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

SNIPPET_SEPARATOR = "\n---\n"


class ContextRetriever:
    """Turns a user query into a `Q: ...\\nA: ...` context block."""

    def __init__(self, records: Sequence[KnowledgeRecord], index: VectorIndex, embed: EmbedFn):
        self.records = records
        self.index = index
        self.embed = embed

    async def retrieve(self, query: str, top_k: int = config.TOP_K) -> str:
        """Retrieve the knowledge records most relevant to `query`.

        Returns:
            Snippets joined by a `---` line, or "" when the index is empty
            (no context available, not an error).

        Raises:
            RetrievalFailure: If the embedding backend fails for the query.
        """
        if not len(self.index):
            return ""

        try:
            matches = await self.index.query(query, self.embed, top_k)
        except Exception as e:
            raise RetrievalFailure(f"query embedding failed: {e}", cause=e) from e

        snippets = [self.records[m.index].as_snippet() for m in matches]
        logger.info(
            f"[RETRIEVER] Retrieved {len(snippets)} KB rows "
            f"(scores: {', '.join(f'{m.score:.2f}' for m in matches)}) for query: {query[:80]}"
        )
        return SNIPPET_SEPARATOR.join(snippets)
