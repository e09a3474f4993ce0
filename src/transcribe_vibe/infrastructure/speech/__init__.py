from .source import TranscriptSource
from .supervisor import ListeningSupervisor, CaptureError, SourceRestarted

__all__ = ["TranscriptSource", "ListeningSupervisor", "CaptureError", "SourceRestarted"]
