"""Data types shared by the knowledge base, retrieval and chat pipeline.

Records are identified by their position in the loaded knowledge base, so
`EmbeddingEntry.index` and `ScoredMatch.index` both point back into the
same ordered collection.
"""
import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..errors import MissingContact, MissingMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KnowledgeRecord:
    """One question/answer row of the knowledge base."""
    question: str
    answer: str

    def embedding_text(self) -> str:
        return f"{self.question}\n{self.answer}"

    def keyword_haystack(self) -> str:
        return f"{self.question} {self.answer}".lower()

    def as_snippet(self) -> str:
        return f"Q: {self.question}\nA: {self.answer}"


@dataclass(frozen=True)
class EmbeddingEntry:
    index: int
    vector: Sequence[float]


@dataclass(frozen=True)
class ScoredMatch:
    index: int
    score: float


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_openai(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """Validated body of POST /api/chat.

    Attributes:
        message: The current user message (never empty).
        history: Caller-supplied earlier turns, passed to the LLM verbatim.
    """
    message: str
    history: List[ChatMessage] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatRequest":
        """Build a request from a decoded JSON body.

        Raises:
            MissingMessage: If the payload has no non-empty string `message`.
        """
        if not isinstance(payload, dict):
            raise MissingMessage()

        message = payload.get("message")
        if not isinstance(message, str) or not message:
            raise MissingMessage()

        raw_history = payload.get("history")
        history: List[ChatMessage] = []
        if isinstance(raw_history, list):
            for i, item in enumerate(raw_history):
                if (
                    isinstance(item, dict)
                    and isinstance(item.get("role"), str)
                    and isinstance(item.get("content"), str)
                ):
                    history.append(ChatMessage(role=item["role"], content=item["content"]))
                else:
                    logger.warning(f"[CHAT] Dropping malformed history entry at position {i}")

        return cls(message=message, history=history)


@dataclass
class ChatResponse:
    reply: str

    def to_dict(self) -> Dict[str, str]:
        return {"reply": self.reply}


@dataclass
class Lead:
    """A sales lead captured through POST /api/lead."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    need: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, lead_id: str) -> "Lead":
        """Build a lead from a decoded JSON body.

        Raises:
            MissingContact: If neither `email` nor `phone` is given.
        """
        data = payload if isinstance(payload, dict) else {}
        if not data.get("email") and not data.get("phone"):
            raise MissingContact()
        return cls(
            id=lead_id,
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            company=data.get("company"),
            need=data.get("need"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ComposerState(Enum):
    """States of the answer composer."""
    IDLE = "idle"
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    DEGRADED_TO_KEYWORD = "degraded_to_keyword"
    DEGRADED_TO_APOLOGY = "degraded_to_apology"


@dataclass
class ComposedAnswer:
    """Outcome of one pass through the composer.

    Attributes:
        reply: Text returned to the caller.
        state: Final composer state.
        degraded: True when the reply did not come from the generation backend.
        context_used: True when retrieved KB context was sent to the LLM.
        path: Every state the request passed through, starting at IDLE.
    """
    reply: str
    state: ComposerState
    degraded: bool = False
    context_used: bool = False
    path: List[ComposerState] = field(default_factory=list)
