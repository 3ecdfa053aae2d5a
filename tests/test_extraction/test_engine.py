"""Tests for the extraction engine capture rule."""

import pytest

from infocapture.extraction.engine import extract_fields, match_field, process
from infocapture.extraction.fields import FieldRegistry, FieldSpec
from infocapture.extraction.history import MatchHistory


@pytest.fixture
def registry():
    return FieldRegistry()


class TestCaptureRule:
    def test_first_name_anchors_on_first_word(self, registry):
        values, history = process("my first name is John Smith", registry)
        assert values == {"first name": "name is"}
        assert history.entries == ("first name",)

    def test_date_of_birth_captures_following_label_words(self, registry):
        values, history = process("date of birth 01 15 1990", registry)
        assert values == {"date of birth": "of birth"}
        assert history.entries == ("date of birth",)

    def test_trigger_word_as_last_token_writes_nothing(self, registry):
        values, history = process("address", registry)
        assert values == {}
        assert len(history) == 0

    def test_trailing_space_does_not_create_capture_room(self, registry):
        values, history = process("my home address ", registry)
        assert values == {}
        assert len(history) == 0

    def test_single_following_token(self, registry):
        values, _ = process("address Main", registry)
        assert values == {"address": "Main"}

    def test_capture_window_is_two_tokens(self, registry):
        values, _ = process("my address is 12 Main Street", registry)
        assert values == {"address": "is 12"}

    def test_casing_of_captured_tokens_is_preserved(self, registry):
        values, _ = process("Beneficiary Jane DOE today", registry)
        assert values["beneficiary"] == "Jane DOE"

    def test_presence_test_is_not_word_boundary_aware(self):
        registry = FieldRegistry(["dress"])
        values, _ = process("my address is 4 Elm", registry)
        assert values["dress"] == "is 4"
        assert values["address"] == "is 4"

    def test_anchor_uses_first_occurrence_of_trigger_word(self, registry):
        values, _ = process("at last we are done last name Doe", registry)
        assert values == {"last name": "we are"}

    def test_label_absent_even_if_trigger_word_present(self, registry):
        values, history = process("first come first served", registry)
        assert values == {}
        assert len(history) == 0

    def test_overlapping_labels_each_capture_independently(self, registry):
        values, history = process("client address is 5 Oak Lane", registry)
        assert values["address"] == "is 5"
        assert values["client address"] == "address is"
        # Registry order: "address" is a default before "client address"
        assert history.entries == ("client address", "address")

    def test_multi_word_label_sharing_trigger_word(self, registry):
        values, history = process("beneficiary phone number 555 1234", registry)
        assert values["beneficiary"] == "phone number"
        assert values["beneficiary phone number"] == "phone number"
        assert history.entries == ("beneficiary phone number", "beneficiary")

    def test_custom_label_keeps_original_casing_as_key(self):
        registry = FieldRegistry(["Policy Number"])
        values, history = process("policy number AB 123", registry)
        assert values == {"Policy Number": "number AB"}
        assert history.head == "Policy Number"

    def test_empty_chunk_is_a_no_op(self, registry):
        values, history = process("", registry, {"address": "x"}, MatchHistory(["address"]))
        assert values == {"address": "x"}
        assert history.entries == ("address",)


class TestStateUpdates:
    def test_later_match_overwrites_value(self, registry):
        values, history = process("address 1 Elm", registry)
        values, history = process("address 2 Oak", registry, values, history)
        assert values["address"] == "2 Oak"
        assert history.entries == ("address", "address")

    def test_processing_never_removes_keys(self, registry):
        current = {"first name": "Ann", "stale custom": "kept"}
        values, _ = process("address 9 Pine", registry, current)
        assert values["first name"] == "Ann"
        assert values["stale custom"] == "kept"
        assert values["address"] == "9 Pine"

    def test_inputs_are_not_mutated(self, registry):
        current = {"first name": "Ann"}
        history = MatchHistory(["first name"])
        process("address 9 Pine", registry, current, history)
        assert current == {"first name": "Ann"}
        assert history.entries == ("first name",)

    def test_unmatched_chunk_is_idempotent_no_op(self, registry):
        current = {"address": "1 Elm"}
        history = MatchHistory(["address"])
        values, new_history = process("nothing to see here", registry, current, history)
        values, new_history = process("nothing to see here", registry, values, new_history)
        assert values == current
        assert new_history == history

    def test_history_keeps_five_most_recent_matches(self, registry):
        chunks = [
            "date of birth x y",
            "first name x",
            "last name x",
            "beneficiary x",
            "address x",
        ]
        values, history = {}, MatchHistory()
        for chunk in chunks:
            values, history = process(chunk, registry, values, history)

        assert history.entries == (
            "address",
            "beneficiary",
            "last name",
            "first name",
            "date of birth",
        )

        values, history = process("first name again", registry, values, history)
        assert len(history) == 5
        assert history.head == "first name"
        assert "date of birth" not in history.entries

    def test_history_length_tracks_total_matches_up_to_capacity(self, registry):
        values, history = {}, MatchHistory()
        for total in range(1, 9):
            values, history = process("address here", registry, values, history)
            assert len(history) == min(5, total)


class TestExtractionResult:
    def test_matches_report_anchor_and_value(self, registry):
        result = extract_fields("please note first name Ada", registry)
        assert len(result.matches) == 1
        match = result.matches[0]
        assert match.label == "first name"
        assert match.value == "name Ada"
        assert match.anchor_index == 2
        assert result.matched_labels == ["first name"]

    def test_no_matches_for_unrelated_text(self, registry):
        result = extract_fields("hello there", registry)
        assert result.matches == ()
        assert result.values == {}

    def test_history_capacity_follows_registry_config(self, registry):
        result = extract_fields("address here", registry)
        assert result.history.capacity == registry.config.history_capacity


class TestMatchField:
    def test_returns_none_when_label_absent(self):
        spec = FieldSpec(label="first name")
        assert match_field(spec, "last name x", ["last", "name", "x"]) is None

    def test_respects_capture_window_argument(self):
        spec = FieldSpec(label="address")
        tokens = ["address", "1", "2", "3"]
        match = match_field(spec, "address 1 2 3", tokens, capture_window=3)
        assert match is not None
        assert match.value == "1 2 3"
