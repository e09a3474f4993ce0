"""Objection pipeline components.

This module contains the business logic for live objection handling:
segmentation, detection, reply coordination and the session that composes them.
"""

# Data models
from .models import (
    ObjectionCategory, ObjectionRecord, ReplyResult,
    TranscriptEvent, Utterance, clamp_confidence
)

# Structured schemas and state management
from .schemas import OraclePayload, SessionState, parse_oracle_reply

# Pipeline stages
from .detector import ObjectionDetector, detect
from .segmenter import TranscriptSegmenter
from .coordinator import ReplyCoordinator, ReplyOutcome, CoordinatorPhase, CycleKind, Oracle

# Prompts
from .prompts import ObjectionPrompts

# Event system
from .events import (
    SessionEventBus, EventLogger, SessionMetrics,
    EventType, NoticeLevel, SessionEvent,
    ListeningStartedEvent, ListeningStoppedEvent, TranscriptUpdatedEvent,
    ObjectionDetectedEvent, ReplyRequestedEvent, ReplyGeneratedEvent,
    ReplyFailedEvent, CredentialRequiredEvent, HistoryChangedEvent,
    StateChangedEvent, NoticeEvent
)

# Session
from .session import ObjectionSession

__all__ = [
    # Data models
    "ObjectionCategory", "ObjectionRecord", "ReplyResult",
    "TranscriptEvent", "Utterance", "clamp_confidence",

    # Schemas and state
    "OraclePayload", "SessionState", "parse_oracle_reply",

    # Pipeline
    "ObjectionDetector", "detect", "TranscriptSegmenter",
    "ReplyCoordinator", "ReplyOutcome", "CoordinatorPhase", "CycleKind", "Oracle",

    # Prompts
    "ObjectionPrompts",

    # Events
    "SessionEventBus", "EventLogger", "SessionMetrics",
    "EventType", "NoticeLevel", "SessionEvent",
    "ListeningStartedEvent", "ListeningStoppedEvent", "TranscriptUpdatedEvent",
    "ObjectionDetectedEvent", "ReplyRequestedEvent", "ReplyGeneratedEvent",
    "ReplyFailedEvent", "CredentialRequiredEvent", "HistoryChangedEvent",
    "StateChangedEvent", "NoticeEvent",

    # Session
    "ObjectionSession",
]
