import json

import pytest

from transcribe_vibe.objections.models import (
    ObjectionCategory, ObjectionRecord, ReplyResult, clamp_confidence
)
from transcribe_vibe.objections.schemas import SessionState, parse_oracle_reply
from transcribe_vibe.objections.testing import make_record


def test_structured_reply_is_parsed():
    raw = json.dumps({
        "reply": "I understand budget matters.",
        "confidence": 9,
        "category": "Budget",
        "subcategory": "Price too high",
    })
    result = parse_oracle_reply(raw)
    assert result == ReplyResult(
        reply="I understand budget matters.",
        confidence=9,
        category=ObjectionCategory.BUDGET,
        subcategory="Price too high",
    )
    assert result.fallback is False


def test_plain_text_becomes_fallback_reply():
    result = parse_oracle_reply("Just a plain string")
    assert result.reply == "Just a plain string"
    assert result.confidence == 5
    assert result.category == ObjectionCategory.OTHER
    assert result.subcategory == "General concern"
    assert result.fallback is True


@pytest.mark.parametrize("confidence,expected", [
    (15, 10),
    (0, 1),
    (-3, 1),
    ("7", 7),
    (7.6, 8),
    (None, 5),
    ("high", 5),
    (True, 5),
])
def test_confidence_is_clamped_or_defaulted(confidence, expected):
    raw = json.dumps({"reply": "ok", "confidence": confidence, "category": "Timing"})
    assert parse_oracle_reply(raw).confidence == expected


def test_missing_confidence_defaults_to_five():
    assert parse_oracle_reply('{"reply": "ok", "category": "Timing"}').confidence == 5


@pytest.mark.parametrize("category,expected", [
    ("Competitor", ObjectionCategory.COMPETITOR),
    ("authority", ObjectionCategory.AUTHORITY),
    (" Product ", ObjectionCategory.PRODUCT),
    ("Pricing", ObjectionCategory.OTHER),
    (None, ObjectionCategory.OTHER),
    (42, ObjectionCategory.OTHER),
])
def test_unknown_categories_map_to_other(category, expected):
    raw = json.dumps({"reply": "ok", "confidence": 6, "category": category})
    assert parse_oracle_reply(raw).category == expected


def test_json_wrapped_in_code_fence_is_extracted():
    raw = '```json\n{"reply": "Fair point.", "confidence": 8, "category": "Timing", "subcategory": "Not now"}\n```'
    result = parse_oracle_reply(raw)
    assert result.reply == "Fair point."
    assert result.category == ObjectionCategory.TIMING
    assert result.fallback is False


def test_json_without_reply_falls_back_to_full_text():
    raw = '{"confidence": 8, "category": "Budget"}'
    result = parse_oracle_reply(raw)
    assert result.fallback is True
    assert result.reply == raw
    assert result.category == ObjectionCategory.OTHER


def test_non_object_json_falls_back():
    result = parse_oracle_reply('"quoted text"')
    assert result.fallback is True
    assert result.reply == '"quoted text"'


def test_empty_completion_gets_default_text():
    result = parse_oracle_reply("")
    assert result.reply == "Sorry, I couldn't generate a response."
    assert result.fallback is True


def test_clamp_confidence_handles_infinities():
    assert clamp_confidence(float("inf")) == 10
    assert clamp_confidence(float("-inf")) == 1
    assert clamp_confidence(float("nan")) == 5


def test_record_normalizes_on_construction():
    record = ObjectionRecord(text="  Too expensive?  ", category="budget", confidence=42)
    assert record.text == "Too expensive?"
    assert record.category == ObjectionCategory.BUDGET
    assert record.confidence == 10


def test_record_rejects_blank_text():
    with pytest.raises(ValueError):
        ObjectionRecord(text="   ")


def test_record_round_trips_through_dict():
    record = make_record("Is this too expensive?", ObjectionCategory.BUDGET, 9, "Price too high")
    assert ObjectionRecord.from_dict(record.to_dict()) == record


@pytest.mark.parametrize("data", [
    {"category": "Budget", "confidence": 5, "timestamp": "2024-01-01T00:00:00+00:00"},
    {"text": "x", "category": "Pricing", "confidence": 5, "timestamp": "2024-01-01T00:00:00+00:00"},
    {"text": "x", "category": "Budget", "confidence": 11, "timestamp": "2024-01-01T00:00:00+00:00"},
    {"text": "x", "category": "Budget", "confidence": "5", "timestamp": "2024-01-01T00:00:00+00:00"},
    {"text": "x", "category": "Budget", "confidence": 5, "timestamp": "yesterday"},
    {"text": "x", "category": ["Budget"], "confidence": 5, "timestamp": "2024-01-01T00:00:00+00:00"},
    ["not", "a", "dict"],
])
def test_record_from_dict_rejects_invalid_data(data):
    with pytest.raises(ValueError):
        ObjectionRecord.from_dict(data)


def test_with_reply_keeps_text_and_timestamp():
    record = make_record("We need more time", ObjectionCategory.OTHER, 5)
    updated = record.with_reply(ReplyResult(
        reply="r", confidence=8, category=ObjectionCategory.TIMING, subcategory="Later"
    ))
    assert updated.text == record.text
    assert updated.timestamp == record.timestamp
    assert (updated.category, updated.subcategory, updated.confidence) == (ObjectionCategory.TIMING, "Later", 8)


def test_session_state_transitions_are_pure():
    state = SessionState()
    generating = state.begin_generating()
    assert state.is_generating is False
    assert generating.is_generating is True

    record = make_record("But why?")
    result = ReplyResult(reply="Because.", confidence=7)
    applied = generating.apply_reply(record, result)
    assert applied.current_reply == "Because."
    assert applied.current_confidence == 7
    assert applied.last_objection == record
    assert applied.is_generating is False

    failed = applied.begin_generating().fail_generating()
    assert failed.current_reply == "Because."
    assert failed.current_confidence == 7


def test_disabled_listening_cannot_be_turned_on():
    state = SessionState().disable_listening()
    assert state.with_listening(True).is_listening is False
