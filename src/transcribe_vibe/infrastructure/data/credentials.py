"""
Storage and validation of the oracle API credential.
"""
import logging
from typing import Optional

from .storage import BlobStorage
from ...errors import InvalidCredentialError
from ...config import CREDENTIAL_PREFIX

logger = logging.getLogger("credentials")


def validate_api_key(api_key: Optional[str]) -> str:
    """
    Check a credential before it is stored or used.

    Returns:
        The trimmed key

    Raises:
        InvalidCredentialError: If the key is empty or has the wrong format
    """
    key = (api_key or "").strip()
    if not key:
        raise InvalidCredentialError("Please enter an API key")
    if not key.startswith(CREDENTIAL_PREFIX):
        raise InvalidCredentialError(f'Invalid API key format. It should start with "{CREDENTIAL_PREFIX}"')
    return key


class CredentialStore:
    """Opaque API key persisted in its own blob, with an optional fixed override."""

    def __init__(self, blob: BlobStorage, override: Optional[str] = None):
        self.blob = blob
        self.override = validate_api_key(override) if override else None

    def get(self) -> Optional[str]:
        """The usable key, or None if nothing valid is configured."""
        if self.override:
            return self.override
        try:
            stored = self.blob.read()
        except OSError as e:
            logger.error(f"Failed to read stored API key: {e}")
            return None
        if not stored:
            return None
        try:
            return validate_api_key(stored)
        except InvalidCredentialError:
            logger.warning("Ignoring stored API key with invalid format")
            return None

    @property
    def present(self) -> bool:
        return self.get() is not None

    def save(self, api_key: str) -> str:
        """Validate and persist a key. Invalid keys are never written."""
        key = validate_api_key(api_key)
        self.blob.write(key)
        logger.info("API key saved")
        return key

    def clear(self) -> None:
        self.blob.delete()
        logger.info("API key cleared")
