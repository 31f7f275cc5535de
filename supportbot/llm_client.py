"""
Generation backend wrapper around the OpenAI Chat Completions API.

Every failure, whatever its cause, is re-raised as `GenerationFailure` so
the composer can degrade with a single except clause.
"""
import logging
from typing import Dict, List, Optional

from openai import AsyncOpenAI

from . import config
from .errors import GenerationFailure

logger = logging.getLogger(__name__)


class OpenAIChatGenerator:
    """Sends an ordered message list to the chat model and returns the completion text."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise GenerationFailure("OPENAI_API_KEY is not configured")
            self._client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    async def generate(
        self,
        messages: List[Dict[str, str]],
        model: str = config.MODEL,
        temperature: float = config.TEMPERATURE,
    ) -> str:
        """Return the first choice's text (may be empty).

        Raises:
            GenerationFailure: On any backend error or a response without choices.
        """
        try:
            completion = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            raise GenerationFailure(f"{type(e).__name__}: {e}", cause=e) from e

        choices = getattr(completion, "choices", None)
        if not choices:
            raise GenerationFailure("completion has no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) or ""

        usage = getattr(completion, "usage", None)
        if usage is not None:
            logger.info(f"[LLM] {model} completion, usage: {getattr(usage, 'total_tokens', '?')} tokens")
        return content
