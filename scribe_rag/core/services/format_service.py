"""Transcript formatting - model first, rule-based fallback, cached."""

import asyncio
import hashlib
import logging
from dataclasses import dataclass

from ..exceptions import CompositionError, ConfigurationError
from ..models.cache import CacheEntry
from ..models.formatting import FormatResult, TranscriptFormat
from ..protocols.llm import LLMProtocol
from ..strategies.formatting import DEFAULT_STRATEGIES, FormatStrategy
from .response_cache import ResponseCache

logger = logging.getLogger(__name__)

MAX_MODEL_INPUT = 4000

FORMAT_PROMPTS = {
    TranscriptFormat.SOAP: (
        "You are a medical documentation assistant. Format the following "
        "transcription into a proper SOAP note (Subjective, Objective, Assessment, "
        "Plan). Use appropriate medical terminology and structure. Be concise.",
        "Please format this medical transcription into a SOAP note.",
    ),
    TranscriptFormat.CLINICAL_SUMMARY: (
        "You are a medical documentation assistant. Create a concise clinical "
        "summary from the following transcription. Include key findings, diagnoses, "
        "and recommendations. Be brief and to the point.",
        "Please create a clinical summary from this transcription.",
    ),
    TranscriptFormat.BULLET_POINTS: (
        "You are a documentation assistant. Convert the following transcription "
        "into a well-organized bullet point list, grouping related information "
        "together. Be concise.",
        "Please convert this transcription into bullet points.",
    ),
    TranscriptFormat.HTML: (
        "You are a documentation assistant. Convert the following transcription "
        "into well-formatted HTML with appropriate headings, paragraphs, and lists. "
        "Use semantic HTML5 elements where appropriate. Be concise.",
        "Please convert this transcription into HTML format.",
    ),
    TranscriptFormat.MARKDOWN: (
        "You are a documentation assistant. Convert the following transcription "
        "into well-formatted Markdown with appropriate headings, paragraphs, and "
        "lists. Be concise.",
        "Please convert this transcription into Markdown format.",
    ),
}

DEFAULT_FORMAT_PROMPT = (
    "You are a documentation assistant. Improve the formatting and clarity of the "
    "following transcription while preserving all information. Be concise.",
    "Please improve the formatting and clarity of this transcription.",
)


@dataclass
class FormattedEntry(CacheEntry):
    """Cached transcript, remembering whether the model produced it."""
    used_model: bool = False


class TranscriptFormatter:
    """Formats transcripts for a given layout and audience."""

    def __init__(
        self,
        llm: LLMProtocol | None,
        cache: ResponseCache,
        timeout: float = 30.0,
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        strategies: dict[TranscriptFormat, FormatStrategy] | None = None,
    ):
        """Initialize formatter.

        Args:
            llm: Completion client. None means rules only.
            cache: Shared response cache.
            timeout: Seconds allowed for one completion.
            model: Completion model override for formatting.
            temperature: Sampling temperature.
            max_tokens: Response token limit.
            strategies: Rule-based fallbacks per format.
        """
        self._llm = llm
        self._cache = cache
        self._timeout = timeout
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._strategies = strategies or DEFAULT_STRATEGIES

    @staticmethod
    def cache_key(text: str, fmt: TranscriptFormat, mode: str | None) -> str:
        digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return ResponseCache.make_key(digest, f"format:{fmt.value}:{mode or ''}")

    async def format(
        self, text: str, fmt: TranscriptFormat, mode: str | None = None
    ) -> FormatResult:
        """Format a transcript.

        Args:
            text: Transcript text.
            fmt: Target layout.
            mode: Audience, e.g. "gp".

        Returns:
            Formatted transcript.
        """

        async def compute() -> FormattedEntry:
            formatted = await self._format_with_model(text, fmt, mode)
            if formatted is not None:
                return FormattedEntry(response=formatted, used_model=True)
            logger.info(f"Falling back to rule-based {fmt.value} formatting")
            return FormattedEntry(response=self._strategies[fmt].apply(text, mode))

        key = self.cache_key(text, fmt, mode)
        entry, from_cache = await self._cache.get_or_compute(key, compute)

        return FormatResult(
            formatted_text=entry.response,
            original_text=text,
            format=fmt,
            from_cache=from_cache,
            used_model=getattr(entry, "used_model", False),
        )

    def build_messages(
        self, text: str, fmt: TranscriptFormat, mode: str | None
    ) -> list[dict]:
        if len(text) > MAX_MODEL_INPUT:
            text = text[:MAX_MODEL_INPUT] + "... (text truncated for faster processing)"

        system, instruction = FORMAT_PROMPTS.get(fmt, DEFAULT_FORMAT_PROMPT)
        audience = mode or "general"
        return [
            {"role": "system", "content": system},
            {
                "role": "user",
                "content": f"{instruction} The context is a {audience} consultation:\n\n{text}",
            },
        ]

    async def _format_with_model(
        self, text: str, fmt: TranscriptFormat, mode: str | None
    ) -> str | None:
        if self._llm is None or fmt is TranscriptFormat.PLAIN:
            return None

        try:
            formatted = await asyncio.wait_for(
                self._llm.complete(
                    self.build_messages(text, fmt, mode),
                    model=self._model,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Formatting model timed out after {self._timeout}s")
            return None
        except (CompositionError, ConfigurationError) as e:
            logger.warning(f"Formatting model failed: {e}")
            return None

        return formatted if formatted and formatted.strip() else None
