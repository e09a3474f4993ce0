from transcribe_vibe.objections.models import TranscriptEvent, Utterance
from transcribe_vibe.objections.segmenter import TranscriptSegmenter


def interim(text, seq):
    return TranscriptEvent(text=text, is_final=False, sequence=seq)


def final(text, seq):
    return TranscriptEvent(text=text, is_final=True, sequence=seq)


def active_segmenter():
    segmenter = TranscriptSegmenter()
    segmenter.activate()
    return segmenter


def test_interim_text_replaces_preview():
    segmenter = active_segmenter()
    assert segmenter.on_chunk(interim("is this", 1)) is None
    assert segmenter.on_chunk(interim("is this too expensive", 2)) is None
    assert segmenter.preview == "is this too expensive"


def test_final_emits_trimmed_utterance_and_clears_preview():
    segmenter = active_segmenter()
    segmenter.on_chunk(interim("is this too", 1))
    utterance = segmenter.on_chunk(final("  Is this too expensive?  ", 2))
    assert utterance == Utterance(text="Is this too expensive?")
    assert segmenter.preview == ""


def test_blank_final_emits_nothing():
    segmenter = active_segmenter()
    segmenter.on_chunk(interim("uh", 1))
    assert segmenter.on_chunk(final("   ", 2)) is None
    assert segmenter.preview == ""


def test_inactive_segmenter_ignores_chunks():
    segmenter = TranscriptSegmenter()
    assert segmenter.on_chunk(final("Is this too expensive?", 1)) is None
    assert segmenter.preview == ""


def test_replayed_final_is_not_emitted_twice():
    segmenter = active_segmenter()
    assert segmenter.on_chunk(final("I'm not sure", 3)) is not None
    assert segmenter.on_chunk(final("I'm not sure", 3)) is None


def test_late_final_is_still_emitted():
    segmenter = active_segmenter()
    assert segmenter.on_chunk(final("Is it too expensive?", 2)).text == "Is it too expensive?"
    assert segmenter.on_chunk(final("We are not sure about timing", 1)).text == "We are not sure about timing"
    assert segmenter.on_chunk(final("We are not sure about timing", 1)) is None
    assert segmenter.last_final_sequence == 2


def test_late_final_keeps_newer_preview():
    segmenter = active_segmenter()
    segmenter.on_chunk(final("first", 2))
    segmenter.on_chunk(interim("third in progress", 4))
    assert segmenter.on_chunk(final("second", 3)).text == "second"
    assert segmenter.preview == "third in progress"


def test_finals_below_the_window_are_dropped():
    segmenter = TranscriptSegmenter(window=5)
    segmenter.activate()
    segmenter.on_chunk(final("newest", 20))
    assert segmenter.on_chunk(final("way too old", 15)) is None
    assert segmenter.on_chunk(final("late but tracked", 16)).text == "late but tracked"


def test_out_of_order_interim_does_not_overwrite_newer_preview():
    segmenter = active_segmenter()
    segmenter.on_chunk(interim("we need more", 5))
    segmenter.on_chunk(interim("we", 4))
    assert segmenter.preview == "we need more"


def test_stale_interim_after_final_is_ignored():
    segmenter = active_segmenter()
    segmenter.on_chunk(final("However it is late", 6))
    segmenter.on_chunk(interim("however", 5))
    assert segmenter.preview == ""


def test_restart_clears_preview_without_losing_or_duplicating():
    segmenter = active_segmenter()
    assert segmenter.on_chunk(final("first one?", 1)).text == "first one?"
    segmenter.on_chunk(interim("second", 2))

    segmenter.reset_preview()
    assert segmenter.preview == ""

    # Engine replays the last final after restarting
    assert segmenter.on_chunk(final("first one?", 1)) is None
    segmenter.on_chunk(interim("second one", 3))
    assert segmenter.preview == "second one"
    assert segmenter.on_chunk(final("second one?", 4)).text == "second one?"
    assert segmenter.last_final_sequence == 4


def test_deactivate_clears_preview():
    segmenter = active_segmenter()
    segmenter.on_chunk(interim("but", 1))
    segmenter.deactivate()
    assert segmenter.preview == ""
    assert not segmenter.active
