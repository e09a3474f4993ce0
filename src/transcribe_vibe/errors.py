"""
Exceptions raised by the objection handling core.
"""
from typing import Optional


class VibeError(Exception):
    """Base class for all errors raised by this package."""


class CredentialError(VibeError):
    """Problems with the oracle credential."""


class MissingCredentialError(CredentialError):
    """An oracle call was attempted with no credential configured."""

    def __init__(self, message: str = "Please set your OpenAI API key first"):
        super().__init__(message)


class InvalidCredentialError(CredentialError):
    """A credential was rejected locally before storage."""


class OracleTransportError(VibeError):
    """The oracle call itself failed (network error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TranscriptSourceError(VibeError):
    """Transient failure of the transcript source (engine hiccup, restart failure)."""


class TranscriptSourceUnsupported(TranscriptSourceError):
    """The host environment has no usable transcript source."""
