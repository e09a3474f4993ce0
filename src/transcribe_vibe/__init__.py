"""
Transcribe n Vibe: live sales-objection handling core.

Consumes a stream of transcribed speech, detects objections, asks an
AI oracle for a classified rebuttal, and keeps a bounded replayable history.
"""

__version__ = "1.0.0"

# Main entry points
from .objections.session import ObjectionSession
from .objections.models import ObjectionRecord, ObjectionCategory
from .config import Config, get_config

__all__ = ["ObjectionSession", "ObjectionRecord", "ObjectionCategory", "Config", "get_config"]
