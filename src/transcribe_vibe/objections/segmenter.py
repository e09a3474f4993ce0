"""
Turns the recognizer's interim/final stream into finalized utterances.
"""
import logging
from typing import Optional, Set

from .models import TranscriptEvent, Utterance
from ..config import FINAL_SEQUENCE_WINDOW

logger = logging.getLogger("segmenter")


class TranscriptSegmenter:
    """
    Rolling preview plus final-utterance emission.

    The recognizer sends the full interim string on every call, so interim
    text replaces the preview instead of being appended. Finals may arrive out
    of order; each final sequence is emitted at most once. A final repeated by
    a restarted engine is dropped, a late final that was never seen is still
    emitted. Finals more than `window` below the newest emitted final are
    no longer tracked and are dropped.
    """

    def __init__(self, window: int = FINAL_SEQUENCE_WINDOW):
        if window < 1:
            raise ValueError("Sequence window must be at least 1")
        self.window = window
        self._active = False
        self._preview = ""
        self._preview_sequence = -1
        self._last_final_sequence = -1
        self._emitted_finals: Set[int] = set()

    @property
    def preview(self) -> str:
        """Live interim text for display."""
        return self._preview

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_final_sequence(self) -> int:
        """Highest final sequence seen so far."""
        return self._last_final_sequence

    def activate(self) -> None:
        self._active = True

    def deactivate(self) -> None:
        self._active = False
        self.reset_preview()

    def reset_preview(self) -> None:
        """Clear the preview; used across recognizer restarts."""
        self._preview = ""
        self._preview_sequence = -1

    def _seen_final(self, sequence: int) -> bool:
        if sequence in self._emitted_finals:
            return True
        return sequence <= self._last_final_sequence - self.window

    def _mark_final(self, sequence: int) -> None:
        self._emitted_finals.add(sequence)
        if sequence > self._last_final_sequence:
            self._last_final_sequence = sequence
            floor = sequence - self.window
            self._emitted_finals = {s for s in self._emitted_finals if s > floor}

    def on_chunk(self, event: TranscriptEvent) -> Optional[Utterance]:
        """
        Consume one transcript event.

        Args:
            event: Interim or final transcript piece

        Returns:
            The finalized Utterance, or None if this event did not finish one
        """
        if not self._active:
            return None

        if not event.is_final:
            if event.sequence <= self._last_final_sequence:
                logger.debug("Dropping stale interim chunk #%d", event.sequence)
                return None
            if event.sequence >= self._preview_sequence:
                self._preview = event.text
                self._preview_sequence = event.sequence
            return None

        if self._seen_final(event.sequence):
            logger.debug("Dropping replayed final chunk #%d", event.sequence)
            return None

        self._mark_final(event.sequence)
        # A late final must not wipe the preview of a newer segment
        if event.sequence >= self._preview_sequence:
            self.reset_preview()

        text = (event.text or "").strip()
        if not text:
            return None

        logger.info("Utterance finalized (#%d): %s", event.sequence, text)
        return Utterance(text=text)
