"""
Event-driven channel between the objection session and its observers.

The presentation layer never reads component internals; it subscribes to
these events and renders the snapshots they carry.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    LISTENING_STARTED = "listening_started"
    LISTENING_STOPPED = "listening_stopped"
    TRANSCRIPT_UPDATED = "transcript_updated"
    OBJECTION_DETECTED = "objection_detected"
    REPLY_REQUESTED = "reply_requested"
    REPLY_GENERATED = "reply_generated"
    REPLY_FAILED = "reply_failed"
    CREDENTIAL_REQUIRED = "credential_required"
    HISTORY_CHANGED = "history_changed"
    STATE_CHANGED = "state_changed"
    NOTICE = "notice"


class NoticeLevel(str, Enum):
    """Severity of a user-visible notice."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class SessionEvent(ABC):
    """Base class for all session events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class ListeningStartedEvent(SessionEvent):
    """Event fired when the session starts listening."""
    def __init__(self, session_id: str, timestamp: float):
        super().__init__(
            event_type=EventType.LISTENING_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class ListeningStoppedEvent(SessionEvent):
    """Event fired when the session stops listening."""
    def __init__(self, session_id: str, timestamp: float):
        super().__init__(
            event_type=EventType.LISTENING_STOPPED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class TranscriptUpdatedEvent(SessionEvent):
    """Event fired when the live transcript preview changes."""
    def __init__(self, session_id: str, timestamp: float, preview: str, is_final: bool):
        super().__init__(
            event_type=EventType.TRANSCRIPT_UPDATED,
            session_id=session_id,
            timestamp=timestamp,
            data={"preview": preview, "is_final": is_final}
        )


@dataclass
class ObjectionDetectedEvent(SessionEvent):
    """Event fired when an utterance is accepted as an objection."""
    def __init__(self, session_id: str, timestamp: float, text: str, signals: List[str]):
        super().__init__(
            event_type=EventType.OBJECTION_DETECTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"text": text, "signals": signals}
        )


@dataclass
class ReplyRequestedEvent(SessionEvent):
    """Event fired when an oracle request starts."""
    def __init__(self, session_id: str, timestamp: float, text: str, kind: str):
        super().__init__(
            event_type=EventType.REPLY_REQUESTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"text": text, "kind": kind}
        )


@dataclass
class ReplyGeneratedEvent(SessionEvent):
    """Event fired when a reply has been applied to the current slot."""
    def __init__(self, session_id: str, timestamp: float, text: str, kind: str,
                 reply: str, confidence: int, category: str, subcategory: str, fallback: bool):
        super().__init__(
            event_type=EventType.REPLY_GENERATED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "text": text,
                "kind": kind,
                "reply": reply,
                "confidence": confidence,
                "category": category,
                "subcategory": subcategory,
                "fallback": fallback
            }
        )


@dataclass
class ReplyFailedEvent(SessionEvent):
    """Event fired when the oracle call itself failed."""
    def __init__(self, session_id: str, timestamp: float, text: str, kind: str,
                 error_message: str, status_code: Optional[int] = None):
        super().__init__(
            event_type=EventType.REPLY_FAILED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "text": text,
                "kind": kind,
                "error_message": error_message,
                "status_code": status_code
            }
        )


@dataclass
class CredentialRequiredEvent(SessionEvent):
    """Event fired when the user must be sent to credential entry."""
    def __init__(self, session_id: str, timestamp: float, reason: str):
        super().__init__(
            event_type=EventType.CREDENTIAL_REQUIRED,
            session_id=session_id,
            timestamp=timestamp,
            data={"reason": reason}
        )


@dataclass
class HistoryChangedEvent(SessionEvent):
    """Event fired after any history mutation."""
    def __init__(self, session_id: str, timestamp: float, history: List[Dict[str, Any]]):
        super().__init__(
            event_type=EventType.HISTORY_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"history": history, "count": len(history)}
        )


@dataclass
class StateChangedEvent(SessionEvent):
    """Event fired with a fresh session snapshot after every transition."""
    def __init__(self, session_id: str, timestamp: float, state):
        super().__init__(
            event_type=EventType.STATE_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"state": state}
        )


@dataclass
class NoticeEvent(SessionEvent):
    """User-visible, non-fatal message."""
    def __init__(self, session_id: str, timestamp: float, level: NoticeLevel,
                 message: str, component: str):
        super().__init__(
            event_type=EventType.NOTICE,
            session_id=session_id,
            timestamp=timestamp,
            data={"level": level.value, "message": message, "component": component}
        )


EventHandler = Callable[[SessionEvent], None]


class SessionEventBus:
    """Event bus for session-to-presentation communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: SessionEvent) -> None:
        """
        Emit an event to all subscribers. A failing handler is logged and
        never interrupts the session.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: SessionEvent) -> None:
        """Log event details. Snapshots and transcript previews go to DEBUG only."""
        if event.event_type in (EventType.STATE_CHANGED, EventType.TRANSCRIPT_UPDATED):
            self.logger.debug(f"Event: {event.event_type.value} | Session: {event.session_id}")
            return
        self.logger.log(self.log_level, f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects metrics from session events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: SessionEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.OBJECTION_DETECTED:
            self.objections_detected += 1
        elif event.event_type == EventType.REPLY_REQUESTED:
            self.replies_requested += 1
        elif event.event_type == EventType.REPLY_GENERATED:
            self.replies_generated += 1
            if event.data.get("fallback"):
                self.fallback_replies += 1
        elif event.event_type == EventType.REPLY_FAILED:
            self.replies_failed += 1
        elif event.event_type == EventType.NOTICE and event.data.get("level") in (NoticeLevel.WARNING.value, NoticeLevel.ERROR.value):
            self.errors_reported += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "objections_detected": self.objections_detected,
            "replies_requested": self.replies_requested,
            "replies_generated": self.replies_generated,
            "fallback_replies": self.fallback_replies,
            "replies_failed": self.replies_failed,
            "errors_reported": self.errors_reported
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.objections_detected = 0
        self.replies_requested = 0
        self.replies_generated = 0
        self.fallback_replies = 0
        self.replies_failed = 0
        self.errors_reported = 0
