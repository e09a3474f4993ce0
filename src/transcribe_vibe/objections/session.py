"""
Objection session: composes segmenter, detector, coordinator and history.
"""
import time
import uuid
import asyncio
import logging
from typing import Optional, List, Dict, Set

from .models import ObjectionRecord, TranscriptEvent, utc_timestamp
from .schemas import SessionState
from .detector import ObjectionDetector
from .segmenter import TranscriptSegmenter
from .coordinator import ReplyCoordinator, ReplyOutcome, CoordinatorPhase, CycleKind, Oracle
from .events import (
    SessionEventBus, EventLogger, SessionMetrics, EventType, EventHandler,
    ListeningStartedEvent, ListeningStoppedEvent, TranscriptUpdatedEvent,
    ObjectionDetectedEvent, ReplyRequestedEvent, ReplyGeneratedEvent,
    ReplyFailedEvent, CredentialRequiredEvent, HistoryChangedEvent,
    StateChangedEvent, NoticeEvent, NoticeLevel
)
from ..errors import (
    MissingCredentialError, InvalidCredentialError, OracleTransportError,
    TranscriptSourceError, TranscriptSourceUnsupported
)
from ..infrastructure.speech import TranscriptSource, ListeningSupervisor, CaptureError, SourceRestarted
from ..infrastructure.data import CredentialStore, ObjectionHistoryStore, FileBlobStorage
from ..infrastructure.llm import OpenAIRestClient
from ..config import Config, RESTART_DELAY_SECONDS

logger = logging.getLogger("session")


class ObjectionSession:
    """
    Live objection handling session.

    Owns the only mutable SessionState reference and replaces it through the
    state's pure transitions. Observers learn about every change from the
    event bus; nothing here knows how the state is rendered.

    Failures from segmentation, detection, credentials, storage and the oracle
    are turned into events; the public methods do not raise for them.
    """

    def __init__(self,
                 oracle: Oracle,
                 credentials: CredentialStore,
                 history: ObjectionHistoryStore,
                 source: Optional[TranscriptSource] = None,
                 detector: Optional[ObjectionDetector] = None,
                 event_bus: Optional[SessionEventBus] = None,
                 session_id: Optional[str] = None,
                 restart_delay: float = RESTART_DELAY_SECONDS):
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.credentials = credentials
        self.history_store = history
        self.detector = detector or ObjectionDetector()
        self.segmenter = TranscriptSegmenter()
        self.coordinator = ReplyCoordinator(oracle, credentials, history, listener=self._on_phase_change)
        self.supervisor = ListeningSupervisor(source, restart_delay) if source is not None else None

        # Initialize event system
        self.event_bus = event_bus or SessionEventBus()
        self.event_logger = EventLogger()
        self.metrics = SessionMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self._state = SessionState()
        self._pump_tasks: Set[asyncio.Task] = set()
        self._initialized = False

    @classmethod
    def from_config(cls, config: Config, source: Optional[TranscriptSource] = None,
                    event_bus: Optional[SessionEventBus] = None) -> "ObjectionSession":
        """Build a session with the OpenAI oracle and file-backed storage."""
        oracle = OpenAIRestClient(
            model=config.model_name,
            timeout=config.llm_timeout,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )
        credentials = CredentialStore(FileBlobStorage(config.credential_file), override=config.openai_api_key)
        history = ObjectionHistoryStore(FileBlobStorage(config.history_file), limit=config.history_limit)
        return cls(
            oracle=oracle,
            credentials=credentials,
            history=history,
            source=source,
            event_bus=event_bus,
            restart_delay=config.restart_delay,
        )

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def preview(self) -> str:
        return self.segmenter.preview

    @property
    def history(self) -> List[ObjectionRecord]:
        return list(self._state.history)

    @property
    def current_reply(self) -> str:
        return self._state.current_reply

    @property
    def current_confidence(self) -> Optional[int]:
        return self._state.current_confidence

    @property
    def is_listening(self) -> bool:
        return self._state.is_listening

    @property
    def is_generating(self) -> bool:
        return self._state.is_generating

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        self.event_bus.subscribe(event_type, handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self.event_bus.subscribe_all(handler)

    def get_metrics(self) -> Dict[str, int]:
        return self.metrics.get_metrics()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        self.event_bus.emit(StateChangedEvent(self.session_id, time.time(), state))

    def _notice(self, level: NoticeLevel, message: str, component: str) -> None:
        self.event_bus.emit(NoticeEvent(self.session_id, time.time(), level, message, component))

    def _sync_history(self) -> None:
        records = self.history_store.list()
        self._set_state(self._state.with_history(records))
        self.event_bus.emit(HistoryChangedEvent(
            self.session_id, time.time(), [record.to_dict() for record in records]
        ))

    def _on_phase_change(self, phase: CoordinatorPhase, kind: CycleKind, text: str) -> None:
        if phase == CoordinatorPhase.REQUESTING:
            self._set_state(self._state.begin_generating())
            self.event_bus.emit(ReplyRequestedEvent(self.session_id, time.time(), text, kind.value))

    def _credential_required(self, reason: str) -> None:
        logger.warning(f"Credential required: {reason}")
        self._set_state(self._state.with_credential(False))
        self.event_bus.emit(CredentialRequiredEvent(self.session_id, time.time(), reason))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> SessionState:
        """
        Load persisted history and check the environment. Safe to call again;
        the unsupported-source notice is only reported once.
        """
        records = self.history_store.load()
        state = self._state.with_history(records).with_credential(self.credentials.present)

        report_unsupported = False
        if self.supervisor is not None and not self.supervisor.is_supported() and state.listening_supported:
            state = state.disable_listening()
            report_unsupported = True

        self._set_state(state)

        if report_unsupported:
            logger.error("Transcript source unsupported; listening disabled")
            self._notice(NoticeLevel.ERROR, "Speech recognition is not supported in this environment", "transcript_source")
        if not state.api_key_present and not self._initialized:
            self._credential_required("No API key configured")

        self._initialized = True
        logger.info(f"Session {self.session_id} initialized with {len(records)} history records")
        return self._state

    def start_listening(self) -> bool:
        """
        Start consuming transcript events. Idempotent. With a transcript source
        this must be called from the running event loop.

        Returns:
            True if the session is listening afterwards
        """
        if self._state.is_listening:
            return True
        if not self._state.listening_supported:
            logger.debug("Ignoring start_listening: listening disabled")
            return False

        if self.supervisor is not None:
            try:
                self.supervisor.start()
            except TranscriptSourceUnsupported as e:
                logger.error(f"Transcript source unsupported: {e}")
                self._set_state(self._state.disable_listening())
                self._notice(NoticeLevel.ERROR, str(e), "transcript_source")
                return False
            except TranscriptSourceError as e:
                logger.error(f"Error starting recognition: {e}")
                self._notice(NoticeLevel.ERROR, f"Error starting recognition: {e}", "transcript_source")
                return False
            task = asyncio.get_running_loop().create_task(self._pump(self.supervisor.events()))
            self._pump_tasks.add(task)
            task.add_done_callback(self._pump_tasks.discard)

        self.segmenter.activate()
        self._set_state(self._state.with_listening(True))
        self.event_bus.emit(ListeningStartedEvent(self.session_id, time.time()))
        self._notice(NoticeLevel.SUCCESS, "Started listening for objections", "session")
        return True

    def stop_listening(self) -> None:
        """
        Stop intake. Idempotent. An oracle call already in flight is not
        cancelled; its reply is applied when it arrives.
        """
        if not self._state.is_listening:
            return
        self.segmenter.deactivate()
        if self.supervisor is not None:
            self.supervisor.stop()
        self._set_state(self._state.with_listening(False))
        self.event_bus.emit(ListeningStoppedEvent(self.session_id, time.time()))
        self._notice(NoticeLevel.INFO, "Stopped listening", "session")

    async def join(self) -> None:
        """
        Wait until every event pump has finished its current work after
        stop_listening(), including pumps from earlier listening runs that are
        still applying a late reply.
        """
        while True:
            pending = [task for task in self._pump_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _pump(self, items) -> None:
        async for item in items:
            try:
                if isinstance(item, TranscriptEvent):
                    await self.on_transcript_event(item)
                elif isinstance(item, SourceRestarted):
                    self.segmenter.reset_preview()
                    self.event_bus.emit(TranscriptUpdatedEvent(self.session_id, time.time(), "", False))
                elif isinstance(item, CaptureError):
                    self._notice(NoticeLevel.WARNING, f"Speech recognition error: {item.message}", "transcript_source")
            except Exception as e:
                logger.error(f"Transcript pump failed on {type(item).__name__}: {e}")
                self._notice(NoticeLevel.ERROR, f"Transcript processing error: {e}", "session")
        logger.debug("Transcript pump finished")

    # ------------------------------------------------------------------
    # Objection handling
    # ------------------------------------------------------------------

    async def on_transcript_event(self, event: TranscriptEvent) -> Optional[ObjectionRecord]:
        """Feed one transcript event through segmentation and, if finalized, detection."""
        try:
            before = self.segmenter.preview
            utterance = self.segmenter.on_chunk(event)
        except Exception as e:
            logger.error(f"Failed to segment transcript event #{event.sequence}: {e}")
            self._notice(NoticeLevel.WARNING, "Transcript processing error", "segmenter")
            self.segmenter.reset_preview()
            return None

        if utterance is not None:
            self.event_bus.emit(TranscriptUpdatedEvent(self.session_id, time.time(), utterance.text, True))
            return await self.handle_utterance(utterance.text)
        if self.segmenter.preview != before:
            self.event_bus.emit(TranscriptUpdatedEvent(self.session_id, time.time(), self.segmenter.preview, False))
        return None

    async def handle_utterance(self, text: str) -> Optional[ObjectionRecord]:
        """
        Run detection on a finalized utterance and, if accepted, drive one
        reply cycle end-to-end.

        Returns:
            The stored record, or None if the utterance was not an objection or
            the cycle failed
        """
        text = (text or "").strip()
        try:
            accepted = self.detector.detect(text)
        except Exception as e:
            logger.error(f"Objection detection failed: {e}")
            self._notice(NoticeLevel.WARNING, "Objection detection error", "detector")
            return None
        if not accepted:
            logger.debug(f"Not an objection: {text}")
            return None

        detected_at = utc_timestamp()
        signals = self.detector.matched_signals(text)
        logger.info(f"Objection detected: {text} (signals: {signals})")
        self._set_state(self._state.with_objection(ObjectionRecord(text=text, timestamp=detected_at)))
        self.event_bus.emit(ObjectionDetectedEvent(self.session_id, time.time(), text, signals))

        outcome = await self._run(CycleKind.DETECTED, text, lambda: self.coordinator.handle(text, detected_at))
        return outcome.record if outcome else None

    async def regenerate(self) -> Optional[ObjectionRecord]:
        """Ask again for the last objection. No effect while a request is in flight."""
        record = self._state.last_objection
        if record is None:
            logger.debug("Nothing to regenerate")
            return None
        if self.coordinator.busy:
            logger.info("Regenerate ignored: request already in flight")
            return None
        outcome = await self._run(CycleKind.REGENERATE, record.text, lambda: self.coordinator.regenerate(record))
        return outcome.record if outcome else None

    async def replay(self, record: ObjectionRecord) -> Optional[ObjectionRecord]:
        """Re-answer an objection picked from history. No effect while a request is in flight."""
        if self.coordinator.busy:
            logger.info("Replay ignored: request already in flight")
            return None
        self._notice(NoticeLevel.INFO, "Replaying objection", "session")
        outcome = await self._run(CycleKind.REPLAY, record.text, lambda: self.coordinator.replay(record))
        return outcome.record if outcome else None

    async def _run(self, kind: CycleKind, text: str, cycle) -> Optional[ReplyOutcome]:
        try:
            outcome = await cycle()
        except MissingCredentialError as e:
            self._notice(NoticeLevel.ERROR, str(e), "coordinator")
            self._credential_required(str(e))
            return None
        except OracleTransportError as e:
            logger.error(f"Reply generation failed for '{text}': {e}")
            self._set_state(self._state.fail_generating())
            self.event_bus.emit(ReplyFailedEvent(
                self.session_id, time.time(), text, kind.value, str(e), e.status_code
            ))
            self._notice(NoticeLevel.ERROR, str(e), "oracle")
            return None
        except Exception as e:
            logger.error(f"Reply cycle failed for '{text}': {e}")
            self._set_state(self._state.fail_generating())
            self._notice(NoticeLevel.ERROR, f"Failed to process objection: {e}", "session")
            return None

        if outcome is None:
            return None

        self._set_state(self._state.apply_reply(outcome.record, outcome.result))
        self._sync_history()
        result = outcome.result
        self.event_bus.emit(ReplyGeneratedEvent(
            self.session_id, time.time(), outcome.record.text, kind.value,
            result.reply, result.confidence, result.category.value,
            result.subcategory, result.fallback
        ))
        return outcome

    # ------------------------------------------------------------------
    # History and credentials
    # ------------------------------------------------------------------

    def clear_history(self) -> None:
        try:
            self.history_store.clear()
        except OSError as e:
            logger.error(f"Failed to clear history: {e}")
            self._notice(NoticeLevel.ERROR, f"Failed to clear history: {e}", "history")
            return
        self._sync_history()
        self._notice(NoticeLevel.SUCCESS, "History cleared", "history")

    def save_api_key(self, api_key: str) -> bool:
        """Validate and store a credential. Invalid keys are rejected with a notice."""
        try:
            self.credentials.save(api_key)
        except InvalidCredentialError as e:
            self._notice(NoticeLevel.ERROR, str(e), "credentials")
            return False
        except OSError as e:
            logger.error(f"Failed to store API key: {e}")
            self._notice(NoticeLevel.ERROR, f"Failed to save API key: {e}", "credentials")
            return False
        self._set_state(self._state.with_credential(self.credentials.present))
        self._notice(NoticeLevel.SUCCESS, "API key saved successfully", "credentials")
        return True

    def clear_api_key(self) -> None:
        try:
            self.credentials.clear()
        except OSError as e:
            logger.error(f"Failed to clear API key: {e}")
            self._notice(NoticeLevel.ERROR, f"Failed to clear API key: {e}", "credentials")
            return
        self._set_state(self._state.with_credential(self.credentials.present))
        self._notice(NoticeLevel.SUCCESS, "API key cleared", "credentials")
