"""
Heuristic objection detection over finalized utterances.

Signals are matched as case-insensitive substrings anywhere in the utterance.
"""
import re
import logging
from typing import Iterable, List, Optional

from ..config import OBJECTION_SIGNALS

logger = logging.getLogger("detector")


class ObjectionDetector:
    """Case-insensitive substring matcher over a fixed set of signals."""

    def __init__(self, signals: Optional[Iterable[str]] = None):
        self.signals = tuple(s.lower() for s in (signals if signals is not None else OBJECTION_SIGNALS) if s)
        if not self.signals:
            raise ValueError("At least one objection signal is required")
        self._pattern = re.compile("|".join(re.escape(s) for s in self.signals), re.IGNORECASE)

    def detect(self, utterance: str) -> bool:
        """Return True if the utterance is non-empty and contains any signal."""
        if not utterance or not utterance.strip():
            return False
        return self._pattern.search(utterance) is not None

    def matched_signals(self, utterance: str) -> List[str]:
        """All signals present in the utterance, in signal-set order."""
        if not utterance or not utterance.strip():
            return []
        lowered = utterance.lower()
        return [s for s in self.signals if s in lowered]


_default_detector = ObjectionDetector()


def detect(utterance: str) -> bool:
    """Module-level shortcut using the default signal set."""
    return _default_detector.detect(utterance)
