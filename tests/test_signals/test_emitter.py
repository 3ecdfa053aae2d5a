"""Tests for the Signal emitter system."""

import logging
import shutil

import pytest

from infocapture.signals.emitter import SignalEmitter
from infocapture.signals.types import SignalType


@pytest.fixture
def tmp_ledger(tmp_path):
    return tmp_path / "session_test" / "signals.jsonl"


@pytest.fixture
def emitter(tmp_ledger):
    return SignalEmitter(session_id="session_001", ledger_path=tmp_ledger)


class TestSignalEmitter:
    """Test signal emission, persistence, and broadcasting."""

    @pytest.mark.asyncio
    async def test_emit_creates_signal(self, emitter):
        signal = await emitter.emit(SignalType.FIELD_MATCHED, {"label": "address"})
        assert signal.sequence == 1
        assert signal.signal_type == SignalType.FIELD_MATCHED
        assert signal.session_id == "session_001"
        assert signal.payload["label"] == "address"

    @pytest.mark.asyncio
    async def test_monotonic_sequence(self, emitter):
        s1 = await emitter.emit(SignalType.LISTENING_STARTED)
        s2 = await emitter.emit(SignalType.CHUNK_PROCESSED)
        s3 = await emitter.emit(SignalType.LISTENING_STOPPED)
        assert [s1.sequence, s2.sequence, s3.sequence] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_signals_are_immutable(self, emitter):
        signal = await emitter.emit(SignalType.FIELD_EDITED, {"key": "value"})
        with pytest.raises(Exception):
            signal.payload = {"modified": True}

    @pytest.mark.asyncio
    async def test_signals_persisted_to_ledger(self, emitter, tmp_ledger):
        await emitter.emit(SignalType.CHUNK_PROCESSED, {"chunk": "hello"})
        await emitter.emit(SignalType.SESSION_SAVED)

        assert tmp_ledger.exists()
        lines = tmp_ledger.read_text().strip().split("\n")
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_load_ledger(self, emitter, tmp_ledger):
        await emitter.emit(SignalType.CHUNK_PROCESSED, {"chunk": "hello"})
        await emitter.emit(SignalType.SESSION_SAVED)

        loaded = SignalEmitter.load_ledger(tmp_ledger)
        assert len(loaded) == 2
        assert loaded[0].signal_type == SignalType.CHUNK_PROCESSED
        assert loaded[1].signal_type == SignalType.SESSION_SAVED

    @pytest.mark.asyncio
    async def test_ledger_directory_recreated_after_removal(self, emitter, tmp_ledger):
        await emitter.emit(SignalType.CHUNK_PROCESSED)
        shutil.rmtree(tmp_ledger.parent)

        await emitter.emit(SignalType.SESSION_SAVED)

        loaded = SignalEmitter.load_ledger(tmp_ledger)
        assert [s.sequence for s in loaded] == [2]

    def test_load_missing_ledger(self, tmp_path):
        assert SignalEmitter.load_ledger(tmp_path / "missing.jsonl") == []

    @pytest.mark.asyncio
    async def test_emitter_without_ledger(self):
        emitter = SignalEmitter(session_id="session_mem")
        await emitter.emit(SignalType.FIELD_EDITED)
        assert len(emitter.signals) == 1

    @pytest.mark.asyncio
    async def test_subscriber_receives_signals(self, emitter):
        received = []

        emitter.subscribe(received.append)
        await emitter.emit(SignalType.LISTENING_STARTED)
        await emitter.emit(SignalType.CHUNK_PROCESSED)

        assert len(received) == 2

    @pytest.mark.asyncio
    async def test_async_subscriber_awaited(self, emitter):
        received = []

        async def on_signal(signal):
            received.append(signal.signal_type)

        emitter.subscribe(on_signal)
        await emitter.emit(SignalType.FIELD_MATCHED)
        assert received == [SignalType.FIELD_MATCHED]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, emitter):
        received = []

        def on_signal(signal):
            received.append(signal)

        emitter.subscribe(on_signal)
        await emitter.emit(SignalType.LISTENING_STARTED)

        emitter.unsubscribe(on_signal)
        await emitter.emit(SignalType.LISTENING_STOPPED)

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_subscriber_error_does_not_break_emission(self, emitter, caplog):
        def bad_subscriber(signal):
            raise RuntimeError("Subscriber failure")

        emitter.subscribe(bad_subscriber)

        with caplog.at_level(logging.ERROR):
            signal = await emitter.emit(SignalType.CHUNK_PROCESSED)
        assert signal.sequence == 1
        assert any(
            getattr(record, "error_code", None) == "SIGNAL_SUBSCRIBER_FAILURE"
            for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_signals_property_returns_copy(self, emitter):
        await emitter.emit(SignalType.CHUNK_PROCESSED)
        signals = emitter.signals
        signals.clear()
        assert len(emitter.signals) == 1

    @pytest.mark.asyncio
    async def test_emit_field_matched_convenience(self, emitter):
        signal = await emitter.emit_field_matched("first name", "name is", 1)
        assert signal.signal_type == SignalType.FIELD_MATCHED
        assert signal.payload == {"label": "first name", "value": "name is", "anchor_index": 1}

    @pytest.mark.asyncio
    async def test_emit_chunk_processed_convenience(self, emitter):
        signal = await emitter.emit_chunk_processed("address x", ["address"], 10)
        assert signal.signal_type == SignalType.CHUNK_PROCESSED
        assert signal.payload["matched_labels"] == ["address"]
        assert signal.payload["transcript_length"] == 10

    @pytest.mark.asyncio
    async def test_emit_listening_change_convenience(self, emitter):
        started = await emitter.emit_listening_change(True, {"usage_count": 1})
        stopped = await emitter.emit_listening_change(False)
        assert started.signal_type == SignalType.LISTENING_STARTED
        assert started.payload["usage_count"] == 1
        assert stopped.signal_type == SignalType.LISTENING_STOPPED
        assert stopped.payload["listening"] is False
