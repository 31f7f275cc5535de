"""
Answer composer: turns a validated chat request into a reply.

Walks the request through the degradation tiers

    IDLE -> RETRIEVING -> GENERATING -> SUCCEEDED
                                     -> DEGRADED_TO_KEYWORD
                                     -> DEGRADED_TO_APOLOGY

Retrieval failures only cost the prompt its context. Any generation failure
hops once to the keyword matcher, and to the fixed apology if that finds
nothing. Nothing is retried and no tier is re-entered.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from . import config
from .errors import GenerationFailure, RetrievalFailure
from .llm_client import OpenAIChatGenerator
from .models.chat_models import (
    ChatRequest,
    ChatResponse,
    ComposedAnswer,
    ComposerState,
    KnowledgeRecord,
)
from .rag.keyword_matcher import KeywordMatcher
from .rag.retriever import ContextRetriever
from .system_prompt import (
    APOLOGY_REPLY,
    DUMMY_APOLOGY_REPLY,
    REPHRASE_REPLY,
    build_context_message,
    build_system_prompt,
)

logger = logging.getLogger(__name__)


class AnswerComposer:
    def __init__(
        self,
        records: Sequence[KnowledgeRecord],
        retriever: ContextRetriever,
        matcher: KeywordMatcher,
        generator: Optional[OpenAIChatGenerator] = None,
        model: str = config.MODEL,
        temperature: float = config.TEMPERATURE,
        top_k: int = config.TOP_K,
        dummy_mode: bool = False,
        system_prompt: Optional[str] = None,
    ):
        self.records = records
        self.retriever = retriever
        self.matcher = matcher
        self.generator = generator
        self.model = model
        self.temperature = temperature
        self.top_k = top_k
        # Without a generator there is nothing to call, so answer from the KB only
        self.dummy_mode = dummy_mode or generator is None
        self.system_prompt = system_prompt or build_system_prompt()

    async def answer(self, payload: Any) -> ChatResponse:
        """Validate a raw request body and compose the reply.

        Raises:
            MissingMessage: Before any retrieval or generation is attempted.
        """
        request = ChatRequest.from_payload(payload)
        composed = await self.compose(request)
        return ChatResponse(reply=composed.reply)

    async def compose(self, request: ChatRequest) -> ComposedAnswer:
        path = [ComposerState.IDLE]

        if self.dummy_mode:
            logger.info("[COMPOSER] Dummy mode, answering from knowledge base only")
            return self.keyword_fallback(request.message, path, apology=DUMMY_APOLOGY_REPLY)

        self._enter(path, ComposerState.RETRIEVING)
        context = await self._retrieve_context(request.message)

        self._enter(path, ComposerState.GENERATING)
        messages = self.build_messages(request, context)
        try:
            text = await self.generator.generate(messages, model=self.model, temperature=self.temperature)
        except Exception as e:
            # Network, auth, quota and malformed responses are all handled the same way
            detail = e.detail if isinstance(e, GenerationFailure) else f"{type(e).__name__}: {e}"
            logger.warning(f"[COMPOSER] Generation failed, falling back to keyword answer: {detail}")
            return self.keyword_fallback(request.message, path)

        reply = text.strip() if isinstance(text, str) else ""
        if not reply:
            logger.info("[COMPOSER] Empty completion, asking user to rephrase")
            reply = REPHRASE_REPLY

        self._enter(path, ComposerState.SUCCEEDED)
        return ComposedAnswer(reply=reply, state=ComposerState.SUCCEEDED, context_used=bool(context), path=path)

    @staticmethod
    def _enter(path: List[ComposerState], state: ComposerState) -> None:
        logger.info(f"[COMPOSER] {path[-1].name} -> {state.name}")
        path.append(state)

    async def _retrieve_context(self, message: str) -> str:
        try:
            return await self.retriever.retrieve(message, top_k=self.top_k)
        except RetrievalFailure as e:
            logger.warning(f"[COMPOSER] Retrieval failed, continuing without context: {e.detail}")
            return ""

    def build_messages(self, request: ChatRequest, context: str) -> List[Dict[str, str]]:
        """Persona, optional KB context, caller history in order, then the user message."""
        messages = [{"role": "system", "content": self.system_prompt}]
        if context:
            messages.append({"role": "system", "content": build_context_message(context)})
        messages.extend(m.to_openai() for m in request.history)
        messages.append({"role": "user", "content": request.message})
        return messages

    def keyword_fallback(
        self,
        message: str,
        path: Optional[List[ComposerState]] = None,
        apology: str = APOLOGY_REPLY,
    ) -> ComposedAnswer:
        path = path if path is not None else [ComposerState.IDLE]
        self._enter(path, ComposerState.DEGRADED_TO_KEYWORD)
        kb_reply = self.matcher.match(message, self.records)
        if kb_reply:
            return ComposedAnswer(reply=kb_reply, state=ComposerState.DEGRADED_TO_KEYWORD, degraded=True, path=path)

        self._enter(path, ComposerState.DEGRADED_TO_APOLOGY)
        return ComposedAnswer(reply=apology, state=ComposerState.DEGRADED_TO_APOLOGY, degraded=True, path=path)
