import pytest

from transcribe_vibe.errors import InvalidCredentialError
from transcribe_vibe.infrastructure.data import CredentialStore, validate_api_key
from transcribe_vibe.objections.testing import InMemoryBlob, TEST_API_KEY


def test_valid_key_is_trimmed():
    assert validate_api_key("  sk-abc  ") == "sk-abc"


def test_empty_key_rejected():
    with pytest.raises(InvalidCredentialError, match="Please enter an API key"):
        validate_api_key("   ")


def test_wrong_prefix_rejected():
    with pytest.raises(InvalidCredentialError, match='should start with "sk-"'):
        validate_api_key("pk-123")


def test_invalid_key_is_never_persisted():
    blob = InMemoryBlob()
    store = CredentialStore(blob)
    with pytest.raises(InvalidCredentialError):
        store.save("not-a-key")
    assert blob.content is None
    assert blob.writes == 0
    assert not store.present


def test_save_get_clear():
    blob = InMemoryBlob()
    store = CredentialStore(blob)
    store.save(TEST_API_KEY)
    assert store.get() == TEST_API_KEY
    assert store.present

    store.clear()
    assert store.get() is None


def test_stored_invalid_key_is_ignored():
    store = CredentialStore(InMemoryBlob("garbage"))
    assert store.get() is None


def test_override_wins_over_stored_key():
    store = CredentialStore(InMemoryBlob(TEST_API_KEY), override="sk-override")
    assert store.get() == "sk-override"


def test_invalid_override_rejected():
    with pytest.raises(InvalidCredentialError):
        CredentialStore(InMemoryBlob(), override="bad")
