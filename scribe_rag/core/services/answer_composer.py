"""Answer composer - prompt templating around the completion client."""

import asyncio
import logging

from ..exceptions import CompositionError, ConfigurationError
from ..models.chat import ChatMessage, ComposedAnswer, LectureContext
from ..models.document import RetrievalResult
from ..protocols.llm import LLMProtocol

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, there was an error generating a response. Please try again."

NO_CONTEXT_MESSAGE = (
    "Sorry, I could not find any reference material for this question. "
    "Please try rephrasing it or ask again later."
)

_CITE_RULE = (
    "If the information is not in the provided context, say that you don't have "
    "enough information and provide a general response based on your knowledge.\n"
    "Always cite your sources when you use information from the provided context."
)

SYSTEM_PROMPTS = {
    "gp": (
        "You are a helpful medical assistant. Answer the user's question based on "
        "the provided medical literature.\n" + _CITE_RULE
    ),
    "school": (
        "You are a helpful teaching assistant. Answer the student's question based "
        "on the provided educational material.\n" + _CITE_RULE
    ),
}

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question based on the "
    "provided information.\n" + _CITE_RULE
)

LOW_CONFIDENCE_NOTE = (
    "The context below was not matched to the question and may be unrelated. "
    "Do not rely on it unless it clearly answers the question, and say so when "
    "you are unsure."
)

PROMPT_WITH_CONTEXT = """Context information is below.

{context}

Given the context information and not prior knowledge, answer the query: {question}"""

LECTURE_SYSTEM_PROMPT = """You are a helpful educational assistant answering questions about a lecture.
Use the following lecture context to inform your answers.
Be concise, accurate, and helpful. If you don't know the answer based on the context,
say so and suggest resources the user might want to check.

{context}"""


class AnswerComposer:
    """Builds role-specific prompts and turns failures into apologies."""

    def __init__(
        self,
        llm: LLMProtocol,
        timeout: float = 30.0,
        temperature: float = 0.5,
        max_tokens: int = 1000,
        lecture_temperature: float = 0.7,
        lecture_max_tokens: int = 500,
    ):
        """Initialize composer.

        Args:
            llm: Completion client.
            timeout: Seconds allowed for one completion.
            temperature: Sampling temperature for answers.
            max_tokens: Response token limit for answers.
            lecture_temperature: Sampling temperature for lecture chat.
            lecture_max_tokens: Response token limit for lecture chat.
        """
        self._llm = llm
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._lecture_temperature = lecture_temperature
        self._lecture_max_tokens = lecture_max_tokens

    def build_messages(
        self, query: str, retrieval: RetrievalResult, mode: str | None = None
    ) -> list[dict]:
        system = SYSTEM_PROMPTS.get((mode or "").lower(), DEFAULT_SYSTEM_PROMPT)
        messages = [{"role": "system", "content": system}]
        if retrieval.low_confidence:
            messages.append({"role": "system", "content": LOW_CONFIDENCE_NOTE})

        context = "\n\n".join(c.content for c in retrieval.chunks)
        messages.append(
            {
                "role": "user",
                "content": PROMPT_WITH_CONTEXT.format(context=context, question=query),
            }
        )
        return messages

    async def compose(
        self, query: str, retrieval: RetrievalResult, mode: str | None = None
    ) -> ComposedAnswer:
        """Answer a query from retrieved chunks.

        Args:
            query: User query.
            retrieval: Retriever output.
            mode: Audience ("gp", "school", other).

        Returns:
            Answer text, or an apology / no-context message with ok=False.
        """
        if not retrieval.has_context:
            logger.info(f"No context for '{query[:50]}', not calling the model")
            return ComposedAnswer(text=NO_CONTEXT_MESSAGE, ok=False)

        messages = self.build_messages(query, retrieval, mode)
        return await self._complete(
            messages, temperature=self._temperature, max_tokens=self._max_tokens
        )

    async def compose_lecture_reply(
        self, messages: list[ChatMessage], lecture: LectureContext
    ) -> ComposedAnswer:
        """Answer the latest user message of a conversation about a lecture."""
        if not any(m.role == "user" and m.content.strip() for m in messages):
            return ComposedAnswer(text=NO_CONTEXT_MESSAGE, ok=False)

        system = LECTURE_SYSTEM_PROMPT.format(context=self._lecture_context(lecture))
        prompt = [{"role": "system", "content": system}]
        prompt.extend(m.to_dict() for m in messages)
        return await self._complete(
            prompt,
            temperature=self._lecture_temperature,
            max_tokens=self._lecture_max_tokens,
        )

    async def _complete(
        self, messages: list[dict], temperature: float, max_tokens: int
    ) -> ComposedAnswer:
        try:
            text = await asyncio.wait_for(
                self._llm.complete(
                    messages, temperature=temperature, max_tokens=max_tokens
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Completion timed out after {self._timeout}s")
            return ComposedAnswer(text=APOLOGY_MESSAGE, ok=False)
        except (CompositionError, ConfigurationError) as e:
            logger.error(f"Completion failed: {e}")
            return ComposedAnswer(text=APOLOGY_MESSAGE, ok=False)

        if not text or not text.strip():
            return ComposedAnswer(text=APOLOGY_MESSAGE, ok=False)
        return ComposedAnswer(text=text, ok=True)

    @staticmethod
    def _lecture_context(lecture: LectureContext) -> str:
        details = "\n".join(
            f"Topic: {r.topic}\n"
            f"   Description: {r.description}\n"
            f"   Resources: {len(r.videos)} videos, {len(r.articles)} articles"
            for r in lecture.topic_resources
        )
        return (
            f"LECTURE SUMMARY:\n{lecture.summary}\n\n"
            f"KEY TOPICS:\n{', '.join(lecture.topics)}\n\n"
            f"TOPIC DETAILS:\n{details}"
        )
