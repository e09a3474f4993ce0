"""
OpenAI chat-completions REST client used as the objection oracle.
"""
import json
import asyncio
import logging
from typing import Optional, Dict, Any, List

import requests

from ...errors import OracleTransportError
from ...objections.prompts import ObjectionPrompts
from ...config import OPENAI_BASE_URL, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS, TEMPERATURE

logger = logging.getLogger("llm_client")


class OpenAIRestClient:
    """REST-based client for OpenAI chat models."""

    def __init__(self,
                 model: str = MODEL_NAME,
                 base_url: str = OPENAI_BASE_URL,
                 timeout: int = LLM_TIMEOUT,
                 temperature: float = TEMPERATURE,
                 max_output_tokens: int = MAX_OUTPUT_TOKENS,
                 session: Optional[requests.Session] = None):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.session = session or requests.Session()

    def generate_content(
        self,
        messages: List[Dict[str, str]],
        api_key: str,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> str:
        """
        Run one chat completion and return the message text.

        Raises:
            OracleTransportError: On network failure or a non-2xx response
        """
        url = f"{self.base_url}/chat/completions"
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": int(max_output_tokens if max_output_tokens is not None else self.max_output_tokens),
            "temperature": float(temperature if temperature is not None else self.temperature),
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            resp = self.session.post(url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Oracle request failed: %s", e)
            raise OracleTransportError(f"Network error: {e}") from e

        if resp.status_code >= 400:
            message = self._error_message(resp)
            logger.error("Oracle error %d: %s", resp.status_code, message)
            raise OracleTransportError(message, status_code=resp.status_code)

        try:
            resp_json = resp.json()
        except ValueError:
            # Not JSON at all: hand the body over as plain text
            return resp.text

        return self._parse_response_text(resp_json)

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        """Prefer the provider's own error message when the body carries one."""
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
                return error["message"]
            if isinstance(error, str) and error:
                return error
        return f"Failed to generate response (HTTP {resp.status_code})"

    def _parse_response_text(self, resp_json: Any) -> str:
        """
        Extract the message content from a chat-completions response.
        Returns an empty string when the response carries no content.
        """
        if not isinstance(resp_json, dict):
            return json.dumps(resp_json, separators=(",", ":"))

        choices = resp_json.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            if isinstance(first, dict):
                message = first.get("message")
                if isinstance(message, dict) and isinstance(message.get("content"), str):
                    return message["content"]
                # Legacy completions schema
                if isinstance(first.get("text"), str):
                    return first["text"]
            return ""

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        return ""

    async def complete(self, objection: str, api_key: str) -> str:
        """
        Ask the oracle to classify and answer one objection.

        The blocking HTTP call runs in a worker thread so the event loop keeps
        consuming transcript events meanwhile.
        """
        messages = ObjectionPrompts.messages(objection)
        logger.debug("Sending objection to oracle: %s", objection)
        text = await asyncio.to_thread(self.generate_content, messages, api_key)
        logger.debug("Raw oracle output: %s", repr(text))
        return text

    def close(self) -> None:
        self.session.close()
