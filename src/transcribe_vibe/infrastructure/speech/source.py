"""
Narrow interface to a host speech-recognition engine.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ...objections.models import TranscriptEvent

ResultCallback = Callable[[TranscriptEvent], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class TranscriptSource(ABC):
    """
    A continuous recognizer that reports results through callbacks.

    Implementations number their events with a sequence that keeps increasing
    across start/stop cycles of the same instance. `start()` may raise
    TranscriptSourceUnsupported when the host has no engine, or
    TranscriptSourceError for a transient failure.
    """

    def __init__(self):
        self.on_result: Optional[ResultCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        self.on_end: Optional[EndCallback] = None

    def is_supported(self) -> bool:
        """Whether the host environment can recognize speech at all."""
        return True

    @abstractmethod
    def start(self) -> None:
        """Begin (or resume) recognition."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recognition; the engine reports on_end when it has stopped."""

    def _emit_result(self, event: TranscriptEvent) -> None:
        if self.on_result:
            self.on_result(event)

    def _emit_error(self, message: str) -> None:
        if self.on_error:
            self.on_error(message)

    def _emit_end(self) -> None:
        if self.on_end:
            self.on_end()
