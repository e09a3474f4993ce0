"""
Data management infrastructure for objection history and credentials.
"""

from .storage import BlobStorage, FileBlobStorage
from .history import ObjectionHistoryStore
from .credentials import CredentialStore, validate_api_key

__all__ = [
    'BlobStorage',
    'FileBlobStorage',
    'ObjectionHistoryStore',
    'CredentialStore',
    'validate_api_key',
]
