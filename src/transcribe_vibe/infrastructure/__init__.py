"""Infrastructure components for the objection handling core.

This module contains low-level technical components: the oracle client,
transcript source supervision, and persisted storage.
"""

# Speech infrastructure
from .speech import TranscriptSource, ListeningSupervisor

# LLM infrastructure
from .llm import OpenAIRestClient

# Data infrastructure
from .data import BlobStorage, FileBlobStorage, ObjectionHistoryStore, CredentialStore

__all__ = [
    # Speech
    "TranscriptSource", "ListeningSupervisor",

    # LLM client
    "OpenAIRestClient",

    # Storage
    "BlobStorage", "FileBlobStorage", "ObjectionHistoryStore", "CredentialStore",
]
