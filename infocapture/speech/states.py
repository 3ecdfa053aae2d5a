"""Listening state definitions — the supervisor's states and transitions."""

from __future__ import annotations

from enum import Enum


class ListeningState(str, Enum):
    """All valid listening states. The supervisor is a small finite state
    machine driven by user start/stop requests and recognizer lifecycle."""

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    RESTARTING = "RESTARTING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


# Valid state transitions. Each key maps to a set of states it can transition to.
VALID_TRANSITIONS: dict[ListeningState, set[ListeningState]] = {
    ListeningState.IDLE: {ListeningState.LISTENING},
    ListeningState.LISTENING: {
        ListeningState.RESTARTING,
        ListeningState.STOPPED,
        ListeningState.FAILED,
    },
    ListeningState.RESTARTING: {
        ListeningState.LISTENING,
        ListeningState.STOPPED,
        ListeningState.FAILED,
    },
    ListeningState.STOPPED: {ListeningState.LISTENING},
    ListeningState.FAILED: {ListeningState.LISTENING},
}

ACTIVE_STATES = {ListeningState.LISTENING, ListeningState.RESTARTING}
