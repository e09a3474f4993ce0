"""
Reply coordinator: one classify-and-reply request at a time.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from .models import ObjectionRecord, ReplyResult
from .schemas import parse_oracle_reply
from ..errors import MissingCredentialError
from ..infrastructure.data import CredentialStore, ObjectionHistoryStore

logger = logging.getLogger("coordinator")


class Oracle(Protocol):
    """Anything that can answer an objection with raw reply text."""

    async def complete(self, objection: str, api_key: str) -> str:
        ...


class CoordinatorPhase(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"


class CycleKind(str, Enum):
    """What started a request cycle."""
    DETECTED = "detected"
    REGENERATE = "regenerate"
    REPLAY = "replay"


@dataclass(frozen=True)
class ReplyOutcome:
    """Result of one successful cycle."""
    kind: CycleKind
    record: ObjectionRecord
    result: ReplyResult


PhaseListener = Callable[[CoordinatorPhase, CycleKind, str], None]


class ReplyCoordinator:
    """
    Serializes oracle calls for a session.

    New objections wait for the in-flight request to resolve. Regenerate and
    replay are ignored while any cycle is in flight or queued.
    """

    def __init__(self,
                 oracle: Oracle,
                 credentials: CredentialStore,
                 history: ObjectionHistoryStore,
                 listener: Optional[PhaseListener] = None):
        self.oracle = oracle
        self.credentials = credentials
        self.history = history
        self.listener = listener
        self._phase = CoordinatorPhase.IDLE
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def phase(self) -> CoordinatorPhase:
        return self._phase

    @property
    def is_generating(self) -> bool:
        return self._phase == CoordinatorPhase.REQUESTING

    @property
    def busy(self) -> bool:
        """True from the moment a cycle is accepted until it has finished, queued cycles included."""
        return self._pending > 0

    def _set_phase(self, phase: CoordinatorPhase, kind: CycleKind, text: str) -> None:
        self._phase = phase
        if self.listener:
            self.listener(phase, kind, text)

    def _require_credential(self) -> str:
        api_key = self.credentials.get()
        if not api_key:
            raise MissingCredentialError()
        return api_key

    async def _run_cycle(self, text: str, kind: CycleKind) -> ReplyResult:
        """
        Idle -> Requesting -> Idle around one oracle call. Caller holds the lock.

        Raises:
            MissingCredentialError: Before any network attempt
            OracleTransportError: If the call itself failed
        """
        api_key = self._require_credential()

        self._set_phase(CoordinatorPhase.REQUESTING, kind, text)
        try:
            raw = await self.oracle.complete(text, api_key)
        finally:
            self._set_phase(CoordinatorPhase.IDLE, kind, text)

        result = parse_oracle_reply(raw)
        logger.info(
            f"{kind.value} reply for '{text}': category={result.category.value}, "
            f"confidence={result.confidence}, fallback={result.fallback}"
        )
        return result

    async def handle(self, text: str, timestamp: Optional[str] = None) -> ReplyOutcome:
        """
        Classify and answer a newly detected objection, then add it to history.

        Args:
            text: Objection text
            timestamp: Detection time; defaults to now

        Returns:
            ReplyOutcome with the stored record
        """
        self._pending += 1
        try:
            async with self._lock:
                result = await self._run_cycle(text, CycleKind.DETECTED)
                record = ObjectionRecord.from_reply(text, result, timestamp)
                self.history.add(record)
                return ReplyOutcome(CycleKind.DETECTED, record, result)
        finally:
            self._pending -= 1

    async def regenerate(self, record: ObjectionRecord) -> Optional[ReplyOutcome]:
        """
        Ask again for the same objection. Returns None if a request is in flight.

        The record keeps its original detection timestamp; its classification
        takes the latest oracle output and it moves to the front of history.
        """
        if self.busy:
            logger.info(f"Ignoring regenerate for '{record.text}': request already in flight")
            return None
        self._pending += 1
        try:
            async with self._lock:
                result = await self._run_cycle(record.text, CycleKind.REGENERATE)
                updated = record.with_reply(result)
                self.history.add(updated)
                return ReplyOutcome(CycleKind.REGENERATE, updated, result)
        finally:
            self._pending -= 1

    async def replay(self, record: ObjectionRecord) -> Optional[ReplyOutcome]:
        """
        Re-run a record picked from history. Returns None if a request is in flight.

        The stored record is updated where it stands in history; its position
        is not changed.
        """
        if self.busy:
            logger.info(f"Ignoring replay for '{record.text}': request already in flight")
            return None
        self._pending += 1
        try:
            async with self._lock:
                result = await self._run_cycle(record.text, CycleKind.REPLAY)
                updated = record.with_reply(result)
                if not self.history.update(updated):
                    logger.debug(f"Replayed objection '{record.text}' is no longer in history")
                return ReplyOutcome(CycleKind.REPLAY, updated, result)
        finally:
            self._pending -= 1
