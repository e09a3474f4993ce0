"""
Data models for the objection pipeline.
"""
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..config import MIN_CONFIDENCE, MAX_CONFIDENCE, DEFAULT_CONFIDENCE


class ObjectionCategory(str, Enum):
    """Fixed set of objection categories."""
    BUDGET = "Budget"
    TIMING = "Timing"
    COMPETITOR = "Competitor"
    AUTHORITY = "Authority"
    PRODUCT = "Product"
    OTHER = "Other"

    @classmethod
    def from_label(cls, value: Any) -> "ObjectionCategory":
        """Map any value onto a category; unknown labels become OTHER."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.OTHER
        label = value.strip().lower()
        for member in cls:
            if member.value.lower() == label:
                return member
        return cls.OTHER


def clamp_confidence(value: Any, default: int = DEFAULT_CONFIDENCE) -> int:
    """Coerce a confidence value into an int within [MIN_CONFIDENCE, MAX_CONFIDENCE]."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    if math.isinf(number):
        return MAX_CONFIDENCE if number > 0 else MIN_CONFIDENCE
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(round(number))))


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, including the UTC "Z" suffix written by JavaScript clients."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class TranscriptEvent:
    """One partial or final piece of recognized speech."""
    text: str
    is_final: bool
    sequence: int


@dataclass(frozen=True)
class Utterance:
    """A finalized transcript segment."""
    text: str


@dataclass(frozen=True)
class ReplyResult:
    """Normalized oracle response for one objection text."""
    reply: str
    confidence: int = DEFAULT_CONFIDENCE
    category: ObjectionCategory = ObjectionCategory.OTHER
    subcategory: str = ""
    fallback: bool = False


@dataclass(frozen=True)
class ObjectionRecord:
    """A classified objection as kept in history."""
    text: str
    category: ObjectionCategory = ObjectionCategory.OTHER
    subcategory: str = ""
    confidence: int = DEFAULT_CONFIDENCE
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self):
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Objection text must be a non-empty string")
        object.__setattr__(self, "text", self.text.strip())
        object.__setattr__(self, "category", ObjectionCategory.from_label(self.category))
        object.__setattr__(self, "subcategory", str(self.subcategory or ""))
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    @classmethod
    def from_reply(cls, text: str, result: ReplyResult, timestamp: Optional[str] = None) -> "ObjectionRecord":
        """Build a fresh record from an oracle result."""
        return cls(
            text=text,
            category=result.category,
            subcategory=result.subcategory,
            confidence=result.confidence,
            timestamp=timestamp or utc_timestamp(),
        )

    def with_reply(self, result: ReplyResult) -> "ObjectionRecord":
        """Copy with the latest classification; text and timestamp are kept."""
        return replace(
            self,
            category=result.category,
            subcategory=result.subcategory,
            confidence=result.confidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "category": self.category.value,
            "subcategory": self.subcategory,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectionRecord":
        """
        Rebuild a record from its persisted form.

        Raises:
            ValueError: If the data does not describe a valid record
        """
        if not isinstance(data, dict):
            raise ValueError(f"Record must be an object, got {type(data).__name__}")

        text = data.get("text")
        category = data.get("category")
        confidence = data.get("confidence")
        timestamp = data.get("timestamp")

        if not isinstance(text, str) or not text.strip():
            raise ValueError("Record is missing its text")
        if not isinstance(category, str) or category not in {member.value for member in ObjectionCategory}:
            raise ValueError(f"Unknown category: {category!r}")
        if isinstance(confidence, bool) or not isinstance(confidence, int):
            raise ValueError(f"Confidence must be an integer, got {confidence!r}")
        if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
            raise ValueError(f"Confidence out of range: {confidence}")
        if not isinstance(timestamp, str):
            raise ValueError("Record is missing its timestamp")
        try:
            parse_timestamp(timestamp)
        except ValueError:
            raise ValueError(f"Invalid timestamp: {timestamp!r}")

        return cls(
            text=text,
            category=ObjectionCategory(category),
            subcategory=str(data.get("subcategory") or ""),
            confidence=confidence,
            timestamp=timestamp,
        )
