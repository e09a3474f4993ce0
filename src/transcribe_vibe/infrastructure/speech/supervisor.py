"""
Keeps a transcript source running while the session is listening.

Recognition engines stop on their own (silence timeouts, network blips).
The supervisor re-arms the source after each unexpected end and turns the
callback interface into one ordered async stream for the session.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

from .source import TranscriptSource
from ...errors import TranscriptSourceError, TranscriptSourceUnsupported
from ...objections.models import TranscriptEvent
from ...config import RESTART_DELAY_SECONDS

logger = logging.getLogger("supervisor")


@dataclass(frozen=True)
class CaptureError:
    """Transient recognizer error, reported as a notice."""
    message: str


@dataclass(frozen=True)
class SourceRestarted:
    """The source ended and is being re-armed; interim text is void."""
    restart_count: int


SupervisorItem = Union[TranscriptEvent, CaptureError, SourceRestarted]


class ListeningSupervisor:
    """Restart-on-end policy around a TranscriptSource."""

    def __init__(self, source: TranscriptSource, restart_delay: float = RESTART_DELAY_SECONDS):
        self.source = source
        self.restart_delay = restart_delay
        self.restart_count = 0

        self._listening = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._restart_handle: Optional[asyncio.TimerHandle] = None

        source.on_result = self._handle_result
        source.on_error = self._handle_error
        source.on_end = self._handle_end

    @property
    def listening(self) -> bool:
        return self._listening

    def is_supported(self) -> bool:
        return self.source.is_supported()

    def start(self) -> None:
        """
        Start the source. Must be called from the running event loop.

        Raises:
            TranscriptSourceUnsupported: If the host has no recognizer
            TranscriptSourceError: If the source failed to start
        """
        if self._listening:
            return
        if not self.source.is_supported():
            raise TranscriptSourceUnsupported("Speech recognition is not supported in this environment")

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._listening = True
        try:
            self.source.start()
        except TranscriptSourceError:
            self._listening = False
            self._put(None)
            raise
        logger.info("Transcript source started")

    def stop(self) -> None:
        """Stop the source and end the current event stream."""
        if not self._listening:
            return
        self._listening = False
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None
        try:
            self.source.stop()
        except TranscriptSourceError as e:
            logger.warning(f"Error stopping transcript source: {e}")
        self._put(None)
        logger.info("Transcript source stopped")

    def events(self) -> AsyncIterator[SupervisorItem]:
        """Ordered stream of items for the current listening run; ends on stop()."""
        if self._queue is None:
            raise RuntimeError("Supervisor has not been started")
        return self._drain(self._queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[SupervisorItem]:
        while True:
            item = await queue.get()
            if item is None:
                return
            yield item

    def _put(self, item: Optional[SupervisorItem]) -> None:
        # Source callbacks may arrive on a host thread
        if self._loop is None or self._queue is None:
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def _handle_result(self, event: TranscriptEvent) -> None:
        if self._listening:
            self._put(event)

    def _handle_error(self, message: str) -> None:
        logger.warning(f"Speech recognition error: {message}")
        if self._listening:
            self._put(CaptureError(message))

    def _handle_end(self) -> None:
        if not self._listening or self._loop is None:
            return
        self.restart_count += 1
        self._put(SourceRestarted(self.restart_count))
        self._loop.call_soon_threadsafe(self._schedule_restart)

    def _schedule_restart(self) -> None:
        if not self._listening or self._loop is None:
            return
        if self._restart_handle is not None:
            self._restart_handle.cancel()
        self._restart_handle = self._loop.call_later(self.restart_delay, self._restart)

    def _restart(self) -> None:
        self._restart_handle = None
        if not self._listening:
            return
        try:
            self.source.start()
            logger.debug(f"Transcript source restarted ({self.restart_count})")
        except TranscriptSourceError as e:
            logger.error(f"Error restarting recognition: {e}")
            self._put(CaptureError(f"Error restarting recognition: {e}"))
