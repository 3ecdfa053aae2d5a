"""Tests for the bounded match history."""

import pytest

from infocapture.extraction.history import HISTORY_CAPACITY, MatchHistory


def test_capacity_constant():
    assert HISTORY_CAPACITY == 5
    assert MatchHistory().capacity == 5


def test_prepend_puts_label_at_head():
    history = MatchHistory().prepend("address").prepend("first name")
    assert history.entries == ("first name", "address")
    assert history.head == "first name"


def test_prepend_returns_new_history():
    original = MatchHistory(["address"])
    updated = original.prepend("first name")
    assert original.entries == ("address",)
    assert updated.entries == ("first name", "address")


def test_oldest_entry_evicted_past_capacity():
    history = MatchHistory(["e", "d", "c", "b", "a"])
    updated = history.prepend("f")
    assert updated.entries == ("f", "e", "d", "c", "b")
    assert len(updated) == 5


def test_construction_keeps_most_recent_entries():
    history = MatchHistory(["1", "2", "3", "4", "5", "6", "7"])
    assert history.entries == ("1", "2", "3", "4", "5")


def test_duplicates_are_kept():
    history = MatchHistory().prepend("address").prepend("address")
    assert history.entries == ("address", "address")


def test_empty_history_has_no_head():
    assert MatchHistory().head is None
    assert len(MatchHistory()) == 0


def test_custom_capacity():
    history = MatchHistory(capacity=2).prepend("a").prepend("b").prepend("c")
    assert history.entries == ("c", "b")


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        MatchHistory(capacity=0)


def test_equality():
    assert MatchHistory(["a", "b"]) == MatchHistory(["a", "b"])
    assert MatchHistory(["a"]) != MatchHistory(["b"])
