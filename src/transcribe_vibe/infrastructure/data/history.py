"""
Bounded, de-duplicating history of classified objections.
"""
import json
import logging
from typing import Iterator, List, Optional

from .storage import BlobStorage
from ...objections.models import ObjectionRecord
from ...config import HISTORY_LIMIT

logger = logging.getLogger("history")


class ObjectionHistoryStore:
    """
    Most-recent-first log of objection records.

    At most one record per exact text is kept; re-adding a text moves it to
    the front. The log never holds more than `limit` records. Every mutation
    rewrites the whole persisted blob.
    """

    def __init__(self, blob: BlobStorage, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.blob = blob
        self.limit = limit
        self._records: List[ObjectionRecord] = []

    def load(self) -> List[ObjectionRecord]:
        """
        Read the persisted history.

        Malformed data never fails session start: it is logged and the
        history starts empty.
        """
        try:
            raw = self.blob.read()
        except OSError as e:
            logger.error(f"Failed to read objection history: {e}")
            self._records = []
            return self.list()

        if raw is None or not raw.strip():
            self._records = []
            return self.list()

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            records = [ObjectionRecord.from_dict(item) for item in data]
        except ValueError as e:
            logger.warning(f"Discarding malformed objection history: {e}")
            self._records = []
            return self.list()

        self._records = self._normalize(records)
        logger.info(f"Loaded {len(self._records)} objection records")
        return self.list()

    def _normalize(self, records: List[ObjectionRecord]) -> List[ObjectionRecord]:
        """Keep the first occurrence of each text, capped to the limit."""
        seen = set()
        normalized = []
        for record in records:
            if record.text in seen:
                continue
            seen.add(record.text)
            normalized.append(record)
        return normalized[:self.limit]

    def _commit(self, records: List[ObjectionRecord]) -> None:
        """Persist the new sequence, then make it current. A failed write leaves history unchanged."""
        payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False)
        self.blob.write(payload)
        self._records = records

    def add(self, record: ObjectionRecord) -> None:
        """Insert at the front, replacing any record with the same text and evicting past the limit."""
        records = [record] + [r for r in self._records if r.text != record.text]
        for old in records[self.limit:]:
            logger.debug(f"Evicting oldest objection: {old.text}")
        self._commit(records[:self.limit])

    def update(self, record: ObjectionRecord) -> bool:
        """Replace the same-text record where it stands. Returns False if it is not in history."""
        for idx, existing in enumerate(self._records):
            if existing.text == record.text:
                records = list(self._records)
                records[idx] = record
                self._commit(records)
                return True
        return False

    def remove(self, text: str) -> bool:
        """Drop the record with this exact text."""
        remaining = [r for r in self._records if r.text != text]
        if len(remaining) == len(self._records):
            return False
        self._commit(remaining)
        return True

    def clear(self) -> None:
        self._commit([])
        logger.info("Objection history cleared")

    def find(self, text: str) -> Optional[ObjectionRecord]:
        for record in self._records:
            if record.text == text:
                return record
        return None

    def list(self) -> List[ObjectionRecord]:
        """Records, most recent first."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ObjectionRecord]:
        return iter(list(self._records))
