"""
Testing infrastructure with test doubles for the objection pipeline.
"""
import json
import asyncio
from typing import Any, Dict, List, Optional, Union

from .models import ObjectionCategory, ObjectionRecord, TranscriptEvent
from .events import SessionEvent, SessionEventBus, EventType
from ..errors import TranscriptSourceUnsupported
from ..infrastructure.data import BlobStorage, CredentialStore, ObjectionHistoryStore
from ..infrastructure.speech import TranscriptSource

TEST_API_KEY = "sk-test-0000000000"

OracleResponse = Union[str, Dict[str, Any], BaseException]


class InMemoryBlob(BlobStorage):
    """Blob storage kept in memory; counts writes for assertions."""

    def __init__(self, content: Optional[str] = None):
        self.content = content
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.content

    def write(self, content: str) -> None:
        self.content = content
        self.writes += 1

    def delete(self) -> None:
        self.content = None


class MockOracleClient:
    """
    Scripted oracle.

    Each response is returned in order: dicts are serialized to JSON, strings
    are returned as-is, exceptions are raised. With `gated=True` every call
    waits until `release()` is called, so tests can observe the in-flight
    state.
    """

    def __init__(self, responses: Optional[List[OracleResponse]] = None, gated: bool = False):
        self.responses = list(responses or [])
        self.current_response_idx = 0
        self.request_history: List[Dict[str, str]] = []
        self.gated = gated
        self._gate: Optional[asyncio.Event] = None

    @property
    def call_count(self) -> int:
        return len(self.request_history)

    def release(self) -> None:
        """Let the pending gated call finish."""
        if self._gate is not None:
            self._gate.set()

    async def complete(self, objection: str, api_key: str) -> str:
        self.request_history.append({"objection": objection, "api_key": api_key})

        if self.gated:
            self._gate = asyncio.Event()
            await self._gate.wait()

        if self.current_response_idx < len(self.responses):
            response = self.responses[self.current_response_idx]
            self.current_response_idx += 1
        else:
            response = {"reply": "Mock reply", "confidence": 5, "category": "Other", "subcategory": ""}

        if isinstance(response, BaseException):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


class MockTranscriptSource(TranscriptSource):
    """Transcript source driven directly by the test."""

    def __init__(self, supported: bool = True, start_errors: Optional[List[Exception]] = None):
        super().__init__()
        self.supported = supported
        self.start_errors = list(start_errors or [])
        self.running = False
        self.start_count = 0
        self.stop_count = 0

    def is_supported(self) -> bool:
        return self.supported

    def start(self) -> None:
        if not self.supported:
            raise TranscriptSourceUnsupported("Speech recognition is not supported in this environment")
        self.start_count += 1
        if self.start_errors:
            raise self.start_errors.pop(0)
        self.running = True

    def stop(self) -> None:
        self.stop_count += 1
        self.running = False

    def emit_interim(self, text: str, sequence: int) -> None:
        self._emit_result(TranscriptEvent(text=text, is_final=False, sequence=sequence))

    def emit_final(self, text: str, sequence: int) -> None:
        self._emit_result(TranscriptEvent(text=text, is_final=True, sequence=sequence))

    def emit_error(self, message: str) -> None:
        self._emit_error(message)

    def emit_end(self) -> None:
        """Simulate the engine stopping on its own."""
        self.running = False
        self._emit_end()


class RecordingSubscriber:
    """Collects every event emitted on a bus."""

    def __init__(self, event_bus: Optional[SessionEventBus] = None):
        self.events: List[SessionEvent] = []
        if event_bus is not None:
            event_bus.subscribe_all(self.handle_event)

    def handle_event(self, event: SessionEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[SessionEvent]:
        return [e for e in self.events if e.event_type == event_type]


def make_record(text: str,
                category: ObjectionCategory = ObjectionCategory.OTHER,
                confidence: int = 5,
                subcategory: str = "",
                timestamp: str = "2024-01-01T00:00:00+00:00") -> ObjectionRecord:
    """Record with a fixed timestamp for deterministic comparisons."""
    return ObjectionRecord(
        text=text,
        category=category,
        subcategory=subcategory,
        confidence=confidence,
        timestamp=timestamp,
    )


def create_mock_session_setup(responses: Optional[List[OracleResponse]] = None,
                              api_key: Optional[str] = TEST_API_KEY,
                              history: Optional[List[ObjectionRecord]] = None,
                              gated: bool = False,
                              source: Optional[MockTranscriptSource] = None) -> Dict[str, Any]:
    """Create a complete in-memory session setup for testing."""
    from .session import ObjectionSession

    history_blob = InMemoryBlob(
        json.dumps([record.to_dict() for record in history]) if history else None
    )
    credential_blob = InMemoryBlob(api_key)

    oracle = MockOracleClient(responses, gated=gated)
    credentials = CredentialStore(credential_blob)
    history_store = ObjectionHistoryStore(history_blob)
    event_bus = SessionEventBus()
    recorder = RecordingSubscriber(event_bus)

    session = ObjectionSession(
        oracle=oracle,
        credentials=credentials,
        history=history_store,
        source=source,
        event_bus=event_bus,
        session_id="test-session",
        restart_delay=0.0,
    )

    return {
        "session": session,
        "oracle": oracle,
        "credentials": credentials,
        "history_store": history_store,
        "history_blob": history_blob,
        "credential_blob": credential_blob,
        "event_bus": event_bus,
        "recorder": recorder,
        "source": source,
    }


async def settle(iterations: int = 20) -> None:
    """Let queued callbacks and tasks on the running loop make progress."""
    for _ in range(iterations):
        await asyncio.sleep(0)


async def wait_until_generating(coordinator, timeout: float = 1.0) -> None:
    """Block until the coordinator has a request in flight."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not coordinator.is_generating:
        if asyncio.get_running_loop().time() > deadline:
            raise TimeoutError("Coordinator never started a request")
        await asyncio.sleep(0)


__all__ = [
    "TEST_API_KEY", "InMemoryBlob", "MockOracleClient", "MockTranscriptSource",
    "RecordingSubscriber", "make_record", "create_mock_session_setup", "settle",
    "wait_until_generating",
]
