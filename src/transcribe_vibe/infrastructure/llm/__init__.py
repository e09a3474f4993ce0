"""
LLM infrastructure: the oracle client.
"""

from .client import OpenAIRestClient

__all__ = ["OpenAIRestClient"]
