"""
Transcribe n Vibe Configuration
===============================

This file contains ALL configuration for the objection handling core.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional, Tuple


# =============================================================================
# USER SETTINGS - Edit these to customize the session
# =============================================================================

# Optional: OpenAI key. When unset the stored credential is used instead.
OPENAI_API_KEY = None

# Model settings
MODEL_NAME = "gpt-4"
TEMPERATURE = 0.7

# Speech settings
LANGUAGE_CODE = "en-US"

# Storage
WORKDIR = "./_vibe"
HISTORY_FILENAME = "objection_history.json"
CREDENTIAL_FILENAME = "openai_api_key"

# Logging
LOG_FILENAME = "session.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Oracle
OPENAI_BASE_URL = "https://api.openai.com/v1"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 300

# Credentials
CREDENTIAL_PREFIX = "sk-"

# History
HISTORY_LIMIT = 10

# Classification
MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 10
DEFAULT_CONFIDENCE = 5
FALLBACK_SUBCATEGORY = "General concern"
EMPTY_REPLY_FALLBACK = "Sorry, I couldn't generate a response."

# Transcript source supervision
RESTART_DELAY_SECONDS = 0.1

# How far below the newest final sequence a late final is still accepted
FINAL_SEQUENCE_WINDOW = 256

# Phrases that mark an utterance as a possible objection. Matched as
# case-insensitive substrings.
OBJECTION_SIGNALS: Tuple[str, ...] = (
    "?",
    "too expensive",
    "not sure",
    "need more",
    "but",
    "however",
    "concern",
    "worried",
    "afford",
    "budget",
    "price",
    "cost",
    "too much",
    "think about it",
    "not interested",
    "already have",
    "competitor",
)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    openai_api_key: Optional[str] = OPENAI_API_KEY
    model_name: str = MODEL_NAME
    temperature: float = TEMPERATURE
    language_code: str = LANGUAGE_CODE
    workdir: str = WORKDIR
    log_level: str = LOG_LEVEL
    llm_timeout: int = LLM_TIMEOUT
    max_output_tokens: int = MAX_OUTPUT_TOKENS
    history_limit: int = HISTORY_LIMIT
    restart_delay: float = RESTART_DELAY_SECONDS

    @property
    def history_file(self) -> str:
        return os.path.join(self.workdir, HISTORY_FILENAME)

    @property
    def credential_file(self) -> str:
        return os.path.join(self.workdir, CREDENTIAL_FILENAME)

    @property
    def log_file(self) -> str:
        return os.path.join(self.workdir, LOG_FILENAME)

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults above."""
    api_key = os.getenv("OPENAI_API_KEY") or OPENAI_API_KEY
    if api_key is not None:
        api_key = api_key.strip() or None
    if api_key and not api_key.startswith(CREDENTIAL_PREFIX):
        raise ValueError(f'OPENAI_API_KEY must start with "{CREDENTIAL_PREFIX}"')

    log_level = (os.getenv("VIBE_LOG_LEVEL") or LOG_LEVEL).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"Unknown log level: {log_level}")

    return Config(
        openai_api_key=api_key,
        model_name=os.getenv("VIBE_MODEL") or MODEL_NAME,
        language_code=os.getenv("VIBE_LANGUAGE") or LANGUAGE_CODE,
        workdir=os.getenv("VIBE_WORKDIR") or WORKDIR,
        log_level=log_level,
    )
