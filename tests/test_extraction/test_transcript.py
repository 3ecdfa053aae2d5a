"""Tests for the transcript accumulator."""

from infocapture.extraction.transcript import TranscriptAccumulator


def test_append_adds_trailing_space():
    transcript = TranscriptAccumulator().append("hello")
    assert transcript.text == "hello "


def test_chunks_accumulate_in_order():
    transcript = TranscriptAccumulator().append("my first name").append("is Ada")
    assert transcript.text == "my first name is Ada "


def test_append_returns_new_value():
    original = TranscriptAccumulator("a ")
    original.append("b")
    assert original.text == "a "


def test_manual_edit_replaces_text():
    transcript = TranscriptAccumulator().append("misheard words")
    edited = transcript.replace_text("corrected words")
    assert edited.text == "corrected words"
    assert edited.append("more").text == "corrected wordsmore "
