"""
Structured schemas for oracle output and session state.
"""
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .models import ObjectionCategory, ObjectionRecord, ReplyResult, clamp_confidence
from ..config import DEFAULT_CONFIDENCE, FALLBACK_SUBCATEGORY, EMPTY_REPLY_FALLBACK

logger = logging.getLogger("schemas")


class OraclePayload(BaseModel):
    """Structured reply the oracle is instructed to return."""
    model_config = ConfigDict(extra="ignore")

    reply: str
    confidence: int = DEFAULT_CONFIDENCE
    category: ObjectionCategory = ObjectionCategory.OTHER
    subcategory: str = ""

    @field_validator("reply")
    @classmethod
    def _reply_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("reply is empty")
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int:
        return clamp_confidence(value)

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> ObjectionCategory:
        return ObjectionCategory.from_label(value)

    @field_validator("subcategory", mode="before")
    @classmethod
    def _subcategory_text(cls, value: Any) -> str:
        if isinstance(value, str):
            return value.strip()
        return ""

    def to_result(self) -> ReplyResult:
        return ReplyResult(
            reply=self.reply,
            confidence=self.confidence,
            category=self.category,
            subcategory=self.subcategory,
        )


def _fallback_result(text: str) -> ReplyResult:
    return ReplyResult(
        reply=text,
        confidence=DEFAULT_CONFIDENCE,
        category=ObjectionCategory.OTHER,
        subcategory=FALLBACK_SUBCATEGORY,
        fallback=True,
    )


def _extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Find a JSON object in the oracle output, tolerating surrounding prose or code fences."""
    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
        if isinstance(data, dict):
            return data
    return None


def parse_oracle_reply(raw_response: Optional[str]) -> ReplyResult:
    """
    Normalize raw oracle output into a ReplyResult.

    Never raises: anything that is not a usable structured payload becomes a
    full-text fallback reply classified as Other / General concern / 5.

    Args:
        raw_response: Message content returned by the oracle

    Returns:
        ReplyResult with category, subcategory and clamped confidence
    """
    text = (raw_response or "").strip()
    if not text:
        logger.warning("Oracle returned empty content, using default reply")
        return _fallback_result(EMPTY_REPLY_FALLBACK)

    data = _extract_json_object(text)
    if data is None:
        logger.info("Oracle reply is not structured JSON, using full-text fallback")
        return _fallback_result(text)

    try:
        payload = OraclePayload.model_validate(data)
    except ValidationError as e:
        logger.warning("Oracle JSON failed validation (%s), using full-text fallback", e.error_count())
        return _fallback_result(text)

    return payload.to_result()


@dataclass(frozen=True)
class SessionState:
    """
    Snapshot of everything the presentation layer renders.

    Every transition returns a new snapshot; nothing mutates in place.
    """
    is_listening: bool = False
    listening_supported: bool = True
    api_key_present: bool = False
    last_objection: Optional[ObjectionRecord] = None
    current_reply: str = ""
    current_confidence: Optional[int] = None
    is_generating: bool = False
    history: Tuple[ObjectionRecord, ...] = ()

    def with_listening(self, listening: bool) -> "SessionState":
        if listening and not self.listening_supported:
            return self
        return replace(self, is_listening=listening)

    def disable_listening(self) -> "SessionState":
        return replace(self, is_listening=False, listening_supported=False)

    def with_credential(self, present: bool) -> "SessionState":
        return replace(self, api_key_present=present)

    def with_history(self, history) -> "SessionState":
        return replace(self, history=tuple(history))

    def with_objection(self, record: ObjectionRecord) -> "SessionState":
        return replace(self, last_objection=record)

    def begin_generating(self) -> "SessionState":
        return replace(self, is_generating=True)

    def apply_reply(self, record: ObjectionRecord, result: ReplyResult) -> "SessionState":
        """Publish a successful cycle into the current slot."""
        return replace(
            self,
            last_objection=record,
            current_reply=result.reply,
            current_confidence=result.confidence,
            is_generating=False,
        )

    def fail_generating(self) -> "SessionState":
        """A failed cycle only clears the generating flag."""
        return replace(self, is_generating=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_listening": self.is_listening,
            "listening_supported": self.listening_supported,
            "api_key_present": self.api_key_present,
            "last_objection": self.last_objection.to_dict() if self.last_objection else None,
            "current_reply": self.current_reply,
            "current_confidence": self.current_confidence,
            "is_generating": self.is_generating,
            "history": [record.to_dict() for record in self.history],
        }
