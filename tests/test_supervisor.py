import asyncio

import pytest

from transcribe_vibe.errors import TranscriptSourceError, TranscriptSourceUnsupported
from transcribe_vibe.infrastructure.speech import CaptureError, ListeningSupervisor, SourceRestarted
from transcribe_vibe.objections.models import TranscriptEvent
from transcribe_vibe.objections.testing import MockTranscriptSource


async def collect(supervisor):
    return [item async for item in supervisor.events()]


def test_events_before_start_is_an_error():
    supervisor = ListeningSupervisor(MockTranscriptSource(), restart_delay=0.0)
    with pytest.raises(RuntimeError):
        supervisor.events()


def test_unsupported_source_refuses_to_start():
    async def scenario():
        source = MockTranscriptSource(supported=False)
        supervisor = ListeningSupervisor(source, restart_delay=0.0)
        with pytest.raises(TranscriptSourceUnsupported):
            supervisor.start()
        assert not supervisor.listening
        assert source.start_count == 0

    asyncio.run(scenario())


def test_stream_preserves_order_and_ends_on_stop():
    async def scenario():
        source = MockTranscriptSource()
        supervisor = ListeningSupervisor(source, restart_delay=0.0)
        supervisor.start()

        source.emit_interim("not", 1)
        source.emit_error("no-speech")
        source.emit_final("not sure", 2)
        supervisor.stop()
        source.emit_final("after stop", 3)

        items = await collect(supervisor)
        assert items == [
            TranscriptEvent("not", False, 1),
            CaptureError("no-speech"),
            TranscriptEvent("not sure", True, 2),
        ]

    asyncio.run(scenario())


def test_end_triggers_restart():
    async def scenario():
        source = MockTranscriptSource()
        supervisor = ListeningSupervisor(source, restart_delay=0.0)
        supervisor.start()

        source.emit_end()
        await asyncio.sleep(0.01)
        assert source.start_count == 2
        assert supervisor.restart_count == 1

        supervisor.stop()
        assert await collect(supervisor) == [SourceRestarted(1)]

    asyncio.run(scenario())


def test_failed_restart_is_reported_as_capture_error():
    async def scenario():
        source = MockTranscriptSource()
        supervisor = ListeningSupervisor(source, restart_delay=0.0)
        supervisor.start()
        source.start_errors.append(TranscriptSourceError("device lost"))

        source.emit_end()
        await asyncio.sleep(0.01)
        supervisor.stop()

        items = await collect(supervisor)
        assert items[0] == SourceRestarted(1)
        assert isinstance(items[1], CaptureError)
        assert "device lost" in items[1].message

    asyncio.run(scenario())
