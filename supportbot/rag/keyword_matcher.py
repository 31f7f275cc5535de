"""
Keyword fallback for answering straight from the knowledge base.

Used when there is no vector index, when the OpenAI backend fails, and in
dummy mode. It makes no external calls so it is always available.
"""

import logging
from typing import Optional, Sequence, Tuple

from ..errors import NoMatchFound
from ..models.chat_models import KnowledgeRecord

logger = logging.getLogger(__name__)


class KeywordMatcher:
    """Ranks knowledge records by raw token overlap with the query.

    A token counts once per occurrence in the query when it appears as a
    substring anywhere in the record's lower-cased question and answer.
    """

    @staticmethod
    def tokenize(query: Optional[str]) -> list:
        return str(query or "").lower().split()

    def score(self, tokens: Sequence[str], record: KnowledgeRecord) -> int:
        haystack = record.keyword_haystack()
        return sum(1 for token in tokens if token in haystack)

    def best_match(self, query: Optional[str], records: Sequence[KnowledgeRecord]) -> Tuple[int, int]:
        """Return (record index, score) of the best record.

        Ties go to the first record seen.

        Raises:
            NoMatchFound: If no record shares a token with the query.
        """
        tokens = self.tokenize(query)
        best_index, best_score = -1, 0
        for i, record in enumerate(records):
            s = self.score(tokens, record)
            if s > best_score:
                best_index, best_score = i, s

        if best_score == 0:
            raise NoMatchFound(f"no keyword overlap for query of {len(tokens)} tokens")
        return best_index, best_score

    def match(self, query: Optional[str], records: Sequence[KnowledgeRecord]) -> str:
        """Answer of the best matching record, or "" if nothing matched."""
        try:
            index, score = self.best_match(query, records)
        except NoMatchFound:
            logger.info("[KEYWORD] No keyword match in knowledge base")
            return ""
        logger.info(f"[KEYWORD] Matched KB row {index} with score {score}")
        return records[index].answer
