"""Chat service - coordinates cache, retrieval and answer composition."""

import logging
from dataclasses import dataclass

from ..exceptions import TransientProviderError
from ..models.cache import CacheEntry
from ..models.chat import ChatAnswer, ChatMessage, LectureContext
from .answer_composer import APOLOGY_MESSAGE, AnswerComposer
from .response_cache import ResponseCache
from .retrieval_service import Retriever

logger = logging.getLogger(__name__)


@dataclass
class _ComposedEntry(CacheEntry):
    ok: bool = True


class ChatService:
    """Answers questions from reference articles."""

    def __init__(
        self,
        retriever: Retriever,
        composer: AnswerComposer,
        cache: ResponseCache,
    ):
        """Initialize chat service.

        Args:
            retriever: Retrieval service.
            composer: Answer composer.
            cache: Shared response cache.
        """
        self._retriever = retriever
        self._composer = composer
        self._cache = cache

    async def ask(self, query: str, mode: str | None = None) -> ChatAnswer:
        """Answer a query, reusing a cached answer when one is fresh.

        Flow:
            1. Cache lookup by (query, mode)
            2. On miss: retrieve -> compose
            3. Store the answer unless it is an apology

        Args:
            query: User query.
            mode: Audience ("gp", "school", other).

        Returns:
            Chat answer. Transient failures come back as an apology with
            retryable=True.

        Raises:
            DataIntegrityError: Chunk and document stores disagree.
        """
        logger.info(f"Chat query: '{query[:60]}', mode: {mode}")
        key = self._cache.make_key(query, mode)

        try:
            entry, from_cache = await self._cache.get_or_compute(
                key,
                lambda: self._answer(query, mode),
                cacheable=lambda e: getattr(e, "ok", True),
            )
        except TransientProviderError as e:
            logger.error(f"Chat failed for '{query[:50]}': {e}")
            return ChatAnswer(response=APOLOGY_MESSAGE, retryable=True)

        return ChatAnswer(
            response=entry.response,
            sources=list(entry.sources),
            from_cache=from_cache,
            degraded=entry.degraded,
            low_confidence=entry.low_confidence,
            retryable=not getattr(entry, "ok", True),
        )

    async def ask_about_lecture(
        self, messages: list[ChatMessage], lecture: LectureContext
    ) -> ChatAnswer:
        """Answer a follow-up question about a recorded lecture. Not cached."""
        answer = await self._composer.compose_lecture_reply(messages, lecture)
        return ChatAnswer(response=answer.text, retryable=not answer.ok)

    async def _answer(self, query: str, mode: str | None) -> CacheEntry:
        retrieval = await self._retriever.retrieve(query)
        answer = await self._composer.compose(query, retrieval, mode)
        return _ComposedEntry(
            response=answer.text,
            sources=retrieval.citations if answer.ok else [],
            degraded=retrieval.degraded,
            low_confidence=retrieval.low_confidence,
            ok=answer.ok,
        )
