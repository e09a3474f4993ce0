import time

from transcribe_vibe.objections.events import (
    EventType, NoticeEvent, NoticeLevel, ObjectionDetectedEvent, ReplyGeneratedEvent,
    SessionEventBus, SessionMetrics
)


def test_failing_handler_does_not_stop_delivery():
    bus = SessionEventBus()
    received = []

    def broken(event):
        raise RuntimeError("renderer crashed")

    bus.subscribe(EventType.OBJECTION_DETECTED, broken)
    bus.subscribe(EventType.OBJECTION_DETECTED, received.append)
    bus.subscribe_all(broken)
    bus.subscribe_all(received.append)

    bus.emit(ObjectionDetectedEvent("s", time.time(), "But why?", ["but", "?"]))
    assert len(received) == 2


def test_typed_subscription_only_sees_its_type():
    bus = SessionEventBus()
    received = []
    bus.subscribe(EventType.NOTICE, received.append)

    bus.emit(ObjectionDetectedEvent("s", time.time(), "But why?", []))
    bus.emit(NoticeEvent("s", time.time(), NoticeLevel.INFO, "hello", "test"))

    assert [e.event_type for e in received] == [EventType.NOTICE]

    bus.unsubscribe(EventType.NOTICE, received.append)
    bus.emit(NoticeEvent("s", time.time(), NoticeLevel.INFO, "again", "test"))
    assert len(received) == 1


def test_metrics_count_replies_and_problems():
    metrics = SessionMetrics()
    metrics.handle_event(ObjectionDetectedEvent("s", 0.0, "But why?", []))
    metrics.handle_event(ReplyGeneratedEvent("s", 0.0, "But why?", "detected", "r", 5, "Other", "", True))
    metrics.handle_event(NoticeEvent("s", 0.0, NoticeLevel.WARNING, "hiccup", "transcript_source"))
    metrics.handle_event(NoticeEvent("s", 0.0, NoticeLevel.SUCCESS, "saved", "credentials"))

    assert metrics.get_metrics() == {
        "objections_detected": 1,
        "replies_requested": 0,
        "replies_generated": 1,
        "fallback_replies": 1,
        "replies_failed": 0,
        "errors_reported": 1,
    }

    metrics.reset()
    assert set(metrics.get_metrics().values()) == {0}
