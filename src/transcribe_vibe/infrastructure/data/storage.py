"""
Whole-blob persistence for small pieces of session state.
"""
import os
import logging
import tempfile
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger("storage")


class BlobStorage(ABC):
    """A single named blob that is always read and written as a whole."""

    @abstractmethod
    def read(self) -> Optional[str]:
        """Return the stored text, or None if nothing has been stored."""

    @abstractmethod
    def write(self, content: str) -> None:
        """Replace the stored text."""

    @abstractmethod
    def delete(self) -> None:
        """Remove the blob if present."""


class FileBlobStorage(BlobStorage):
    """
    Blob kept in one file on disk.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so the file is never left half-written.
    """

    def __init__(self, path: str):
        self.path = path

    def read(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, 'r', encoding='utf-8') as f:
            return f.read()

    def write(self, content: str) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=os.path.basename(self.path))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        logger.debug(f"Wrote {len(content)} chars to {self.path}")

    def delete(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
            logger.debug(f"Deleted {self.path}")
