
import html
import logging
import re
from abc import ABC, abstractmethod

from ..models.formatting import TranscriptFormat

logger = logging.getLogger(__name__)

GP_MODES = {"gp", "general practitioner"}

_SENTENCE_SPLIT = re.compile(r"[.!?]\s+")


def _pattern(prefix: str) -> re.Pattern:
    return re.compile(prefix + r"(.*?)(?=\.|$)", re.IGNORECASE | re.MULTILINE)


SUBJECTIVE_PATTERNS = [
    _pattern(r"(?:patient|client) (?:reports|states|complains|presents with) "),
    _pattern(r"(?:history|complaint|reason for visit|chief complaint):? "),
    _pattern(r"(?:symptoms|subjective findings):? "),
]

OBJECTIVE_PATTERNS = [
    _pattern(r"(?:vitals|vital signs|examination|exam|physical exam):? "),
    _pattern(r"(?:observed|noted|findings|results):? "),
    _pattern(r"(?:temperature|pulse|blood pressure|bp|heart rate|respiratory rate):? "),
]

ASSESSMENT_PATTERNS = [
    _pattern(r"(?:assessment|diagnosis|impression|evaluation):? "),
    _pattern(r"(?:diagnosed with|condition|disorder):? "),
]

PLAN_PATTERNS = [
    _pattern(r"(?:plan|treatment|therapy|management):? "),
    _pattern(r"(?:prescribed|recommended|advised):? "),
    _pattern(r"(?:follow-up|follow up|return|next visit):? "),
]

KEY_POINT_PATTERNS = [
    _pattern(r"(?:key|important|significant|notable) (?:points|findings|observations):? "),
    _pattern(r"(?:primary|main|chief) (?:concern|complaint|issue|problem):? "),
    _pattern(r"(?:diagnosis|assessment):? "),
]

MEDICAL_TERMS = ["diagnosis", "condition", "treatment", "symptom", "pain", "medication"]


def extract_with_patterns(text: str, patterns: list[re.Pattern], default: str) -> str:
    """Join the first match of each pattern as sentences."""
    parts = []
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1).strip():
            parts.append(f"{match.group(1).strip()}.")
    return " ".join(parts) if parts else default


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def split_paragraphs(text: str) -> list[str]:
    return [p.strip() for p in text.split("\n\n") if p.strip()]


class FormatStrategy(ABC):
    """Rule-based transcript layout used when no model is available."""

    format: TranscriptFormat

    @abstractmethod
    def apply(self, text: str, mode: str | None = None) -> str:
        """Format text for the given audience."""
        ...


class SoapStrategy(FormatStrategy):
    """Subjective / Objective / Assessment / Plan note."""

    format = TranscriptFormat.SOAP

    def sections(self, text: str) -> dict[str, str]:
        return {
            "Subjective": extract_with_patterns(
                text, SUBJECTIVE_PATTERNS, "No subjective information found."
            ),
            "Objective": extract_with_patterns(
                text, OBJECTIVE_PATTERNS, "No objective findings recorded."
            ),
            "Assessment": extract_with_patterns(
                text, ASSESSMENT_PATTERNS, "No assessment provided."
            ),
            "Plan": extract_with_patterns(text, PLAN_PATTERNS, "No plan documented."),
        }

    def apply(self, text: str, mode: str | None = None) -> str:
        body = "\n\n".join(
            f"## {title}\n{content}" for title, content in self.sections(text).items()
        )
        return f"# SOAP Note\n\n{body}"


class ClinicalSummaryStrategy(FormatStrategy):
    """Overview, key findings and plan."""

    format = TranscriptFormat.CLINICAL_SUMMARY

    def apply(self, text: str, mode: str | None = None) -> str:
        summary = ". ".join(split_sentences(text)[:3]) or "No summary available."
        plan = extract_with_patterns(text, PLAN_PATTERNS, "No plan documented.")
        return (
            "# Clinical Summary\n\n"
            f"## Overview\n{summary}\n\n"
            f"## Key Findings\n{self._key_points(text)}\n\n"
            f"## Plan\n{plan}"
        )

    @staticmethod
    def _key_points(text: str) -> str:
        points = extract_with_patterns(text, KEY_POINT_PATTERNS, "")
        if points:
            return points

        relevant = [
            s for s in split_sentences(text)
            if any(term in s.lower() for term in MEDICAL_TERMS)
        ]
        if relevant:
            return "\n".join(f"• {s}" for s in relevant)
        return "No key points identified."


class BulletPointsStrategy(FormatStrategy):
    format = TranscriptFormat.BULLET_POINTS

    def apply(self, text: str, mode: str | None = None) -> str:
        return "\n".join(
            f"• {s}{'' if s.endswith('.') else '.'}" for s in split_sentences(text)
        )


class HtmlStrategy(FormatStrategy):
    """SOAP sections for GPs, paragraphs otherwise. Text is escaped."""

    format = TranscriptFormat.HTML

    def apply(self, text: str, mode: str | None = None) -> str:
        parts = ['<div class="transcription">']
        if (mode or "").lower() in GP_MODES:
            parts.append("<h2>SOAP Note</h2>")
            for title, content in SoapStrategy().sections(text).items():
                body = html.escape(content).replace("\n", "<br>")
                parts.append(f"<h3>{title}</h3>\n<p>{body}</p>")
        else:
            for paragraph in split_paragraphs(text):
                body = html.escape(paragraph).replace("\n", "<br>")
                parts.append(f"<p>{body}</p>")
        parts.append("</div>")
        return "\n".join(parts)


class MarkdownStrategy(FormatStrategy):
    format = TranscriptFormat.MARKDOWN

    def apply(self, text: str, mode: str | None = None) -> str:
        if (mode or "").lower() in GP_MODES:
            return SoapStrategy().apply(text, mode)
        return "\n\n".join(split_paragraphs(text)) + "\n"


class PlainStrategy(FormatStrategy):
    format = TranscriptFormat.PLAIN

    def apply(self, text: str, mode: str | None = None) -> str:
        return text


DEFAULT_STRATEGIES: dict[TranscriptFormat, FormatStrategy] = {
    s.format: s
    for s in (
        SoapStrategy(),
        ClinicalSummaryStrategy(),
        BulletPointsStrategy(),
        HtmlStrategy(),
        MarkdownStrategy(),
        PlainStrategy(),
    )
}
