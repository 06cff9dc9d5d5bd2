"""Prediction event models.

An event is one yes/no subject that principals commit predictions about.

Event lifecycle:
    ACTIVE ↔ PAUSED        (administrator)
    ACTIVE → FINALIZED     (creator or administrator, after the deadline)
    PAUSED → FINALIZED     (creator or administrator, after the deadline)

FINALIZED is terminal. `active` and `finalized` are derived from the
single state field, so an event can never be both.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from foresight.errors import InvalidState


class EventState(str, enum.Enum):
    """Lifecycle state of a prediction event."""
    ACTIVE = "active"
    PAUSED = "paused"
    FINALIZED = "finalized"


# Valid event state transitions
EVENT_TRANSITIONS: Dict[EventState, frozenset] = {
    EventState.ACTIVE: frozenset({EventState.PAUSED, EventState.FINALIZED}),
    EventState.PAUSED: frozenset({EventState.ACTIVE, EventState.FINALIZED}),
    EventState.FINALIZED: frozenset(),
}


@dataclass
class PredictionEvent:
    """A prediction subject owned by the event store.

    Mutable — state, round counter and participant list change over the
    event lifecycle. Identity, text, creator and deadline never change.
    """
    event_id: int
    title: str
    description: str
    creator: str
    created_utc: datetime
    deadline_utc: datetime
    state: EventState = EventState.ACTIVE
    round_counter: int = 1
    outcome: Optional[bool] = None
    finalized_utc: Optional[datetime] = None
    participants: list[str] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.state == EventState.ACTIVE

    @property
    def finalized(self) -> bool:
        return self.state == EventState.FINALIZED

    @property
    def commitment_count(self) -> int:
        return len(self.participants)

    def accepts_commitments(self, now: datetime) -> bool:
        """Commit window: active, not finalized, and before the deadline."""
        return self.active and now < self.deadline_utc

    def transition_to(self, new_state: EventState) -> None:
        """Transition to a new state, validating the transition is legal."""
        allowed = EVENT_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            allowed_str = ", ".join(sorted(s.value for s in allowed)) or "none"
            raise InvalidState(
                f"Invalid event transition: {self.state.value} → {new_state.value}. "
                f"Allowed from {self.state.value}: [{allowed_str}]"
            )
        self.state = new_state

    def snapshot(self) -> EventSnapshot:
        return EventSnapshot(
            event_id=self.event_id,
            title=self.title,
            description=self.description,
            creator=self.creator,
            created_utc=self.created_utc,
            deadline_utc=self.deadline_utc,
            state=self.state,
            round_counter=self.round_counter,
            outcome=self.outcome,
            commitment_count=self.commitment_count,
        )


@dataclass(frozen=True)
class EventSnapshot:
    """Immutable, point-in-time copy of an event returned by queries."""
    event_id: int
    title: str
    description: str
    creator: str
    created_utc: datetime
    deadline_utc: datetime
    state: EventState
    round_counter: int
    outcome: Optional[bool]
    commitment_count: int

    @property
    def active(self) -> bool:
        return self.state == EventState.ACTIVE

    @property
    def finalized(self) -> bool:
        return self.state == EventState.FINALIZED


@dataclass(frozen=True)
class RoundInfo:
    round_counter: int
    active: bool
    time_remaining_seconds: int


@dataclass(frozen=True)
class PredictionStats:
    total: int
    finalized: bool
    active: bool
