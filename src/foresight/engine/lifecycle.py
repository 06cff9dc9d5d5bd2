"""Lifecycle manager — drives event state transitions.

Operations and their gates:
    create_event     any principal; title/description non-blank,
                     0 < duration <= max_duration
    pause_event      administrator; ACTIVE → PAUSED (no-op if PAUSED)
    resume_event     administrator; PAUSED → ACTIVE (no-op if ACTIVE)
    advance_round    creator or administrator; event must be ACTIVE
    finalize_event   creator or administrator; not yet finalized and
                     now >= deadline; → FINALIZED (terminal)

Checks run in a fixed order: existence (NotFound), role (Unauthorized),
lifecycle phase (InvalidState), then time (DeadlineViolation). Every
transition is applied under the event lock with a single clock read.

Pure state logic: notifications are emitted by the service layer.
"""

from __future__ import annotations

from datetime import timedelta

from foresight.clock import Clock
from foresight.config import DEFAULT_MAX_DURATION_SECONDS
from foresight.engine.authorization import AccessControl
from foresight.engine.store import EventStore
from foresight.errors import DeadlineViolation, InvalidState, Unauthorized, ValidationError
from foresight.models.event import EventState, PredictionEvent


class LifecycleManager:
    """Creates events and applies their state transitions.

    Usage:
        lifecycle = LifecycleManager(store, access, clock)
        event = lifecycle.create_event("alice", "BTC>100k", "desc", 604_800)
        lifecycle.finalize_event("alice", event.event_id, outcome=True)
    """

    def __init__(
        self,
        store: EventStore,
        access: AccessControl,
        clock: Clock,
        max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS,
    ) -> None:
        self._store = store
        self._access = access
        self._clock = clock
        self._max_duration = max_duration_seconds

    def create_event(
        self,
        caller: str,
        title: str,
        description: str,
        duration_seconds: int,
    ) -> PredictionEvent:
        """Create a new ACTIVE event in round 1 with deadline = now + duration."""
        if not isinstance(caller, str) or not caller.strip():
            raise ValidationError("Principal identity must be a non-empty string")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title cannot be empty")
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Description cannot be empty")
        if (
            isinstance(duration_seconds, bool)
            or not isinstance(duration_seconds, int)
            or not 0 < duration_seconds <= self._max_duration
        ):
            raise ValidationError(
                f"Invalid duration: {duration_seconds!r} "
                f"(must be in (0, {self._max_duration}] seconds)"
            )

        now = self._clock.now()
        return self._store.add_event(
            title=title,
            description=description,
            creator=caller,
            created_utc=now,
            deadline_utc=now + timedelta(seconds=duration_seconds),
        )

    def pause_event(self, caller: str, event_id: int) -> bool:
        """Stop accepting commitments. Returns False if already paused."""
        with self._store.locked(event_id) as event:
            if not self._access.can_pause(caller):
                raise Unauthorized(f"pause event: {caller!r} is not the administrator")
            if event.state == EventState.PAUSED:
                return False
            event.transition_to(EventState.PAUSED)
            return True

    def resume_event(self, caller: str, event_id: int) -> bool:
        """Accept commitments again. Returns False if already active."""
        with self._store.locked(event_id) as event:
            if not self._access.can_resume(caller):
                raise Unauthorized(f"resume event: {caller!r} is not the administrator")
            if event.finalized:
                raise InvalidState(f"Cannot resume finalized event {event_id}")
            if event.state == EventState.ACTIVE:
                return False
            event.transition_to(EventState.ACTIVE)
            return True

    def advance_round(self, caller: str, event_id: int) -> int:
        """Increment the round counter. Returns the new round.

        Commitments stay scoped to the event, not the round: a principal
        who committed in round 1 still cannot commit again in round 2.
        """
        with self._store.locked(event_id) as event:
            self._access.require_finalizer(event, caller, "advance round")
            if event.finalized:
                raise InvalidState(f"Cannot advance round of finalized event {event_id}")
            if not event.active:
                raise InvalidState(f"Cannot advance round of paused event {event_id}")
            event.round_counter += 1
            return event.round_counter

    def finalize_event(
        self,
        caller: str,
        event_id: int,
        outcome: bool,
    ) -> PredictionEvent:
        """Fix the real outcome. Terminal and one-way."""
        if not isinstance(outcome, bool):
            raise ValidationError(f"outcome must be a bool, got {type(outcome).__name__}")
        with self._store.locked(event_id) as event:
            self._access.require_finalizer(event, caller, "finalize event")
            if event.finalized:
                raise InvalidState(f"Event already finalized: {event_id}")
            now = self._clock.now()
            if now < event.deadline_utc:
                raise DeadlineViolation(
                    f"Event has not ended yet: {event_id} deadline "
                    f"{event.deadline_utc.isoformat()}"
                )
            event.transition_to(EventState.FINALIZED)
            event.outcome = outcome
            event.finalized_utc = now
            return event
