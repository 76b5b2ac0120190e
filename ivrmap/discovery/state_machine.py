"""
Finite state machine for the discovery loop.

Each iteration moves through Planning → Calling → Polling → Extracting →
Merging → Persisting → Deciding, then either back to Planning or to
Stopped. Any active state may fail. Every transition is explicit so the
loop cannot skip a stage (for example, persisting before merging).

Usage:
    sm = DiscoveryStateMachine()
    sm.transition(DiscoveryTrigger.PATH_PLANNED)
    assert sm.current_state == DiscoveryState.CALLING
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class DiscoveryState(str, Enum):
    """All states of a discovery run."""
    PLANNING = "planning"
    CALLING = "calling"
    POLLING = "polling"
    EXTRACTING = "extracting"
    MERGING = "merging"
    PERSISTING = "persisting"
    DECIDING = "deciding"
    STOPPED = "stopped"
    FAILED = "failed"


class DiscoveryTrigger(str, Enum):
    """Events that cause state transitions."""
    PATH_PLANNED = "path_planned"
    CALL_PLACED = "call_placed"
    CALL_FINISHED = "call_finished"
    TRANSCRIPT_READY = "transcript_ready"
    TREE_MERGED = "tree_merged"
    SESSION_SAVED = "session_saved"
    CONTINUE = "continue"
    STOP = "stop"
    ERROR = "error"


ACTIVE_STATES = (
    DiscoveryState.PLANNING,
    DiscoveryState.CALLING,
    DiscoveryState.POLLING,
    DiscoveryState.EXTRACTING,
    DiscoveryState.MERGING,
    DiscoveryState.PERSISTING,
    DiscoveryState.DECIDING,
)


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: DiscoveryState
    to_state: DiscoveryState
    trigger: DiscoveryTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: DiscoveryState
    entered_at: datetime
    trigger: Optional[DiscoveryTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


class DiscoveryStateMachine:
    """Tracks where a discovery run is in its Plan → Call → Analyze cycle."""

    TRANSITIONS: list[Transition] = [
        Transition(DiscoveryState.PLANNING, DiscoveryState.CALLING,
                   DiscoveryTrigger.PATH_PLANNED),
        Transition(DiscoveryState.CALLING, DiscoveryState.POLLING,
                   DiscoveryTrigger.CALL_PLACED),
        Transition(DiscoveryState.POLLING, DiscoveryState.EXTRACTING,
                   DiscoveryTrigger.CALL_FINISHED),
        Transition(DiscoveryState.EXTRACTING, DiscoveryState.MERGING,
                   DiscoveryTrigger.TRANSCRIPT_READY),
        Transition(DiscoveryState.MERGING, DiscoveryState.PERSISTING,
                   DiscoveryTrigger.TREE_MERGED),
        Transition(DiscoveryState.PERSISTING, DiscoveryState.DECIDING,
                   DiscoveryTrigger.SESSION_SAVED),
        Transition(DiscoveryState.DECIDING, DiscoveryState.PLANNING,
                   DiscoveryTrigger.CONTINUE),
        Transition(DiscoveryState.DECIDING, DiscoveryState.STOPPED,
                   DiscoveryTrigger.STOP),
        # External stop signal, honoured between iterations only
        Transition(DiscoveryState.PLANNING, DiscoveryState.STOPPED,
                   DiscoveryTrigger.STOP),
    ] + [
        Transition(state, DiscoveryState.FAILED, DiscoveryTrigger.ERROR)
        for state in ACTIVE_STATES
    ]

    def __init__(self) -> None:
        self._current_state = DiscoveryState.PLANNING
        self._history: list[StateEntry] = [
            StateEntry(state=DiscoveryState.PLANNING, entered_at=datetime.now(timezone.utc))
        ]
        self._iterations: int = 0

    @property
    def current_state(self) -> DiscoveryState:
        return self._current_state

    @property
    def iterations(self) -> int:
        """Number of iterations that reached the Deciding state."""
        return self._iterations

    def transition(self, trigger: DiscoveryTrigger) -> DiscoveryState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                if t.to_state == DiscoveryState.DECIDING:
                    self._iterations += 1
                logger.debug(
                    "Loop transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[DiscoveryTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in (DiscoveryState.STOPPED, DiscoveryState.FAILED)
