import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from transcribe_vibe.errors import OracleTransportError
from transcribe_vibe.infrastructure.llm import OpenAIRestClient
from transcribe_vibe.objections.testing import TEST_API_KEY


def fake_response(status_code=200, payload=None, text=None):
    resp = MagicMock()
    resp.status_code = status_code
    if payload is not None:
        resp.json.return_value = payload
        resp.text = json.dumps(payload)
    else:
        resp.json.side_effect = ValueError("no json")
        resp.text = text or ""
    return resp


def client_with(resp=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = resp
    return OpenAIRestClient(session=session), session


MESSAGES = [{"role": "user", "content": "hi"}]


def test_request_shape():
    client, session = client_with(fake_response(payload={"choices": [{"message": {"content": "ok"}}]}))
    assert client.generate_content(MESSAGES, TEST_API_KEY) == "ok"

    args, kwargs = session.post.call_args
    assert args[0] == "https://api.openai.com/v1/chat/completions"
    assert kwargs["headers"]["Authorization"] == f"Bearer {TEST_API_KEY}"
    assert kwargs["json"]["model"] == "gpt-4"
    assert kwargs["json"]["temperature"] == 0.7
    assert kwargs["json"]["messages"] == MESSAGES
    assert kwargs["timeout"] == 60


def test_provider_error_message_is_used():
    payload = {"error": {"message": "Incorrect API key provided"}}
    client, _ = client_with(fake_response(401, payload=payload))
    with pytest.raises(OracleTransportError) as exc_info:
        client.generate_content(MESSAGES, TEST_API_KEY)
    assert str(exc_info.value) == "Incorrect API key provided"
    assert exc_info.value.status_code == 401


def test_error_without_body_gets_generic_message():
    client, _ = client_with(fake_response(503, text="<html>down</html>"))
    with pytest.raises(OracleTransportError, match=r"HTTP 503"):
        client.generate_content(MESSAGES, TEST_API_KEY)


def test_network_failure_is_transport_error():
    client, _ = client_with(error=requests.ConnectionError("refused"))
    with pytest.raises(OracleTransportError, match="Network error") as exc_info:
        client.generate_content(MESSAGES, TEST_API_KEY)
    assert exc_info.value.status_code is None


@pytest.mark.parametrize("payload,expected", [
    ({"choices": [{"message": {"content": "hello"}}]}, "hello"),
    ({"choices": [{"text": "legacy"}]}, "legacy"),
    ({"choices": []}, ""),
    ({"choices": [{"message": {"content": None}}]}, ""),
    ({"text": "top level"}, "top level"),
    ({}, ""),
])
def test_content_extraction(payload, expected):
    client, _ = client_with(fake_response(payload=payload))
    assert client.generate_content(MESSAGES, TEST_API_KEY) == expected


def test_non_json_success_body_is_returned_as_text():
    client, _ = client_with(fake_response(text="plain body"))
    assert client.generate_content(MESSAGES, TEST_API_KEY) == "plain body"


def test_complete_sends_objection_prompts():
    client, session = client_with(fake_response(payload={"choices": [{"message": {"content": "{}"}}]}))
    assert asyncio.run(client.complete("Is this too expensive?", TEST_API_KEY)) == "{}"

    messages = session.post.call_args.kwargs["json"]["messages"]
    assert messages[0]["role"] == "system"
    assert "JSON" in messages[0]["content"]
    assert messages[1]["role"] == "user"
    assert "Is this too expensive?" in messages[1]["content"]
