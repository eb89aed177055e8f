"""Transcript formatting models."""
from dataclasses import dataclass
from enum import Enum


class TranscriptFormat(Enum):
    """Output layouts for a formatted transcript."""
    SOAP = "SOAP"
    CLINICAL_SUMMARY = "Clinical Summary"
    BULLET_POINTS = "Bullet Points"
    HTML = "HTML"
    MARKDOWN = "Markdown"
    PLAIN = "Plain"

    @classmethod
    def parse(cls, value: str) -> "TranscriptFormat":
        """Match by value or name, case-insensitively. Unknown -> PLAIN."""
        needle = value.strip().lower()
        for fmt in cls:
            if needle in (fmt.value.lower(), fmt.name.lower()):
                return fmt
        return cls.PLAIN


@dataclass
class FormatResult:
    """Formatted transcript."""
    formatted_text: str
    original_text: str
    format: TranscriptFormat
    from_cache: bool = False
    used_model: bool = False

    def to_dict(self) -> dict:
        return {
            "formattedText": self.formatted_text,
            "originalText": self.original_text,
            "format": self.format.value,
            "fromCache": self.from_cache,
        }
