"""Exception types for the chat pipeline.

Only `ValidationError` ever reaches the HTTP caller. Every other error is
absorbed inside the pipeline and turned into a best-effort reply:

- `KnowledgeBaseUnavailable`: logged, the service runs with no local knowledge.
- `RetrievalFailure`: context is treated as empty, generation still runs.
- `GenerationFailure`: the composer degrades to the keyword answer.
- `NoMatchFound`: the keyword matcher found nothing, the apology is returned.
"""

from typing import Optional


class SupportBotError(Exception):
    """Base exception for all chat pipeline errors."""

    pass


class ValidationError(SupportBotError):
    """Raised when a request payload is rejected at the boundary."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MissingMessage(ValidationError):
    """Raised when a chat request has no usable `message`."""

    def __init__(self, detail: str = "message saknas"):
        super().__init__(detail)


class MissingContact(ValidationError):
    """Raised when a lead has neither email nor phone."""

    def __init__(self, detail: str = "Minst e-post eller telefon krävs"):
        super().__init__(detail)


class KnowledgeBaseUnavailable(SupportBotError):
    """Raised when the knowledge source cannot be read or parsed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class RetrievalFailure(SupportBotError):
    """Raised when the embedding backend fails while retrieving context."""

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.detail = detail
        self.cause = cause


class GenerationFailure(SupportBotError):
    """Raised for any failure of the generation backend (network, auth, quota, malformed response)."""

    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.detail = detail
        self.cause = cause


class NoMatchFound(SupportBotError):
    """Raised when no knowledge record shares a token with the query."""

    pass
