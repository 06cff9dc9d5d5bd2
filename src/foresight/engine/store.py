"""Event store — owns event and commitment records.

The store enforces the per-entity invariants:
- at most one commitment per (event, principal); first write wins.
- commitments are accepted only while the event is active, not
  finalized, and before its deadline.
- digest, context and submission time of a stored commitment never
  change.

Concurrency: each event has its own reentrant lock. Every mutation of an
event or of its commitments happens while that lock is held, and the
clock is read once, inside the lock. A registry lock guards event-id
allocation and the event table itself.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from foresight.clock import Clock
from foresight.config import DEFAULT_SALT_BYTES
from foresight.crypto.commitment_codec import (
    compute_digest,
    generate_context,
    is_well_formed_digest,
    validate_context,
)
from foresight.errors import (
    AlreadyExists,
    DeadlineViolation,
    InvalidState,
    NotFound,
    ValidationError,
)
from foresight.models.commitment import CommitContext, Commitment
from foresight.models.event import EventState, PredictionEvent


class EventStore:
    """Owns events and commitments and enforces their invariants.

    Usage:
        store = EventStore(clock)
        event = store.add_event("BTC>100k", "desc", "alice", now, deadline)
        commitment, context = store.submit_choice("bob", event.event_id, True)
    """

    def __init__(
        self,
        clock: Clock,
        salt_bytes: int = DEFAULT_SALT_BYTES,
        first_event_id: int = 0,
    ) -> None:
        if first_event_id < 0:
            raise ValidationError(f"first_event_id must be >= 0, got {first_event_id}")
        self._clock = clock
        self._salt_bytes = salt_bytes
        self._events: dict[int, PredictionEvent] = {}
        self._locks: dict[int, threading.RLock] = {}
        # event_id -> principal -> commitment
        self._commitments: dict[int, dict[str, Commitment]] = {}
        # Ids below first_event_id belong to a previous run of the notification log.
        self._next_id = first_event_id
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(
        self,
        title: str,
        description: str,
        creator: str,
        created_utc: datetime,
        deadline_utc: datetime,
    ) -> PredictionEvent:
        """Allocate the next sequential id and store a new ACTIVE event."""
        with self._registry_lock:
            event = PredictionEvent(
                event_id=self._next_id,
                title=title,
                description=description,
                creator=creator,
                created_utc=created_utc,
                deadline_utc=deadline_utc,
            )
            self._events[event.event_id] = event
            self._locks[event.event_id] = threading.RLock()
            self._commitments[event.event_id] = {}
            self._next_id += 1
            return event

    def get(self, event_id: int) -> PredictionEvent:
        """Return the live event record. Callers mutate it only under `locked`."""
        with self._registry_lock:
            event = self._events.get(event_id)
        if event is None:
            raise NotFound(f"Event does not exist: {event_id}")
        return event

    @contextmanager
    def locked(self, event_id: int) -> Iterator[PredictionEvent]:
        """Hold the event's lock for the duration of the block."""
        with self._registry_lock:
            event = self._events.get(event_id)
            lock = self._locks.get(event_id)
        if event is None or lock is None:
            raise NotFound(f"Event does not exist: {event_id}")
        with lock:
            yield event

    @property
    def total_events(self) -> int:
        """Number of event ids allocated, including ids from earlier runs."""
        with self._registry_lock:
            return self._next_id

    # ------------------------------------------------------------------
    # Commitments
    # ------------------------------------------------------------------

    def submit_commitment(
        self,
        principal: str,
        event_id: int,
        digest: str,
        context: CommitContext,
    ) -> Commitment:
        """Store a precomputed commitment for `principal`.

        Raises:
            ValidationError: blank principal, malformed digest or context.
            NotFound: unknown event.
            InvalidState: event finalized or paused.
            DeadlineViolation: the deadline has passed.
            AlreadyExists: principal already committed to this event.
        """
        _validate_principal(principal)
        if not is_well_formed_digest(digest):
            raise ValidationError("digest must have the form 'sha256:<64 hex chars>'")
        validate_context(context)

        with self.locked(event_id) as event:
            now = self._clock.now()
            return self._insert(event, principal, digest, context, now)

    def submit_choice(
        self,
        principal: str,
        event_id: int,
        choice: bool,
    ) -> tuple[Commitment, CommitContext]:
        """Commit to `choice` with a freshly generated secret context.

        Returns the stored commitment and the context. The context's salt
        is the caller's secret; the store keeps a copy only so the reveal
        engine can recompute the digest.
        """
        _validate_principal(principal)
        if not isinstance(choice, bool):
            raise ValidationError(f"choice must be a bool, got {type(choice).__name__}")

        with self.locked(event_id) as event:
            now = self._clock.now()
            context = generate_context(now, self._salt_bytes)
            digest = compute_digest(choice, principal, context)
            return self._insert(event, principal, digest, context, now), context

    def _insert(
        self,
        event: PredictionEvent,
        principal: str,
        digest: str,
        context: CommitContext,
        now: datetime,
    ) -> Commitment:
        """Check uniqueness and the commit window, then store. Caller holds the lock.

        Uniqueness is checked first: a repeat submission is AlreadyExists
        no matter what phase the event is in.
        """
        per_event = self._commitments[event.event_id]
        if principal in per_event:
            raise AlreadyExists(
                f"Already made prediction for this event: "
                f"{principal} on event {event.event_id}"
            )
        if event.finalized:
            raise InvalidState(f"Event {event.event_id} is finalized")
        if not event.active:
            raise InvalidState(f"Event {event.event_id} is not active")
        if now >= event.deadline_utc:
            raise DeadlineViolation(
                f"Event {event.event_id} commit window closed at "
                f"{event.deadline_utc.isoformat()}"
            )

        commitment = Commitment(
            event_id=event.event_id,
            principal=principal,
            digest=digest,
            context=context,
            submitted_utc=now,
            round_committed=event.round_counter,
        )
        per_event[principal] = commitment
        event.participants.append(principal)
        return commitment

    def get_commitment(self, event_id: int, principal: str) -> Optional[Commitment]:
        with self.locked(event_id):
            return self._commitments[event_id].get(principal)

    def participants(self, event_id: int) -> list[str]:
        with self.locked(event_id) as event:
            return list(event.participants)

    def replace_commitment(self, updated: Commitment) -> None:
        """Swap in a successor record (reveal). Immutable fields must match."""
        with self.locked(updated.event_id):
            per_event = self._commitments[updated.event_id]
            current = per_event.get(updated.principal)
            if current is None:
                raise NotFound(
                    f"No prediction found for {updated.principal} "
                    f"on event {updated.event_id}"
                )
            if (
                current.digest != updated.digest
                or current.context != updated.context
                or current.submitted_utc != updated.submitted_utc
            ):
                raise InvalidState("Commitment digest and context are immutable")
            per_event[updated.principal] = updated

    # ------------------------------------------------------------------
    # Rollback support for the service layer
    # ------------------------------------------------------------------

    def checkpoint(self, event_id: int) -> EventCheckpoint:
        """Capture an event's mutable fields and commitments.

        Used by the service to undo a change whose notification could not
        be written. Take and restore it under the same `locked` block.
        """
        with self.locked(event_id) as event:
            return EventCheckpoint(
                event_id=event_id,
                state=event.state,
                round_counter=event.round_counter,
                outcome=event.outcome,
                finalized_utc=event.finalized_utc,
                participants=tuple(event.participants),
                commitments=dict(self._commitments[event_id]),
            )

    def restore(self, checkpoint: EventCheckpoint) -> None:
        with self.locked(checkpoint.event_id) as event:
            event.state = checkpoint.state
            event.round_counter = checkpoint.round_counter
            event.outcome = checkpoint.outcome
            event.finalized_utc = checkpoint.finalized_utc
            event.participants = list(checkpoint.participants)
            self._commitments[checkpoint.event_id] = dict(checkpoint.commitments)

    def discard_event(self, event_id: int) -> None:
        """Remove the most recently created event and release its id."""
        with self._registry_lock:
            if event_id != self._next_id - 1:
                raise InvalidState(f"Only the newest event can be discarded, not {event_id}")
            self._events.pop(event_id, None)
            self._locks.pop(event_id, None)
            self._commitments.pop(event_id, None)
            self._next_id -= 1


@dataclass(frozen=True)
class EventCheckpoint:
    event_id: int
    state: EventState
    round_counter: int
    outcome: Optional[bool]
    finalized_utc: Optional[datetime]
    participants: tuple[str, ...]
    commitments: dict[str, Commitment]


def _validate_principal(principal: object) -> None:
    if not isinstance(principal, str) or not principal.strip():
        raise ValidationError("Principal identity must be a non-empty string")
