"""
Process-wide chat context.

Built once at startup and handed to every request handler. The knowledge
records and the vector index are written during startup only and read
concurrently afterwards, so no locking is needed.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from . import config
from .answer_composer import AnswerComposer
from .lead_store import LeadStore
from .llm_client import OpenAIChatGenerator
from .models.chat_models import KnowledgeRecord
from .rag import knowledge_base
from .rag.embedder import EmbedFn, OpenAIEmbedder
from .rag.keyword_matcher import KeywordMatcher
from .rag.retriever import ContextRetriever
from .rag.vector_index import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    records: Tuple[KnowledgeRecord, ...]
    index: VectorIndex
    embed: EmbedFn
    retriever: ContextRetriever
    matcher: KeywordMatcher
    composer: AnswerComposer
    leads: LeadStore
    dummy_mode: bool

    @classmethod
    def create(
        cls,
        kb_path: Optional[str] = None,
        records: Optional[Tuple[KnowledgeRecord, ...]] = None,
        embed: Optional[EmbedFn] = None,
        generator: Optional[OpenAIChatGenerator] = None,
        dummy_mode: Optional[bool] = None,
    ) -> "ChatContext":
        """Load the knowledge base and wire the pipeline.

        The vector index starts empty; call `warm_up()` to build it.
        """
        if records is None:
            records = knowledge_base.load(kb_path or config.KB_PATH)

        if dummy_mode is None:
            dummy_mode = not config.generation_backend_configured()
            if dummy_mode and not config.DUMMY_MODE:
                logger.warning("[STARTUP] OPENAI_API_KEY is not set, running in dummy mode")

        embed = embed or OpenAIEmbedder()
        if generator is None and not dummy_mode:
            generator = OpenAIChatGenerator()

        index = VectorIndex()
        retriever = ContextRetriever(records, index, embed)
        matcher = KeywordMatcher()
        composer = AnswerComposer(
            records,
            retriever,
            matcher,
            generator=generator,
            dummy_mode=dummy_mode,
        )
        return cls(
            records=records,
            index=index,
            embed=embed,
            retriever=retriever,
            matcher=matcher,
            composer=composer,
            leads=LeadStore(),
            dummy_mode=dummy_mode,
        )

    async def warm_up(self) -> int:
        """Build KB embeddings. Fails open: the index stays empty on error.

        Returns:
            Number of indexed records.
        """
        if self.dummy_mode:
            logger.info("[STARTUP] Dummy mode, skipping KB embeddings")
            return 0
        await self.index.build(self.records, self.embed)
        return len(self.index)
