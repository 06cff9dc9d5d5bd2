"""Query layer — read accessors for external callers.

Every query copies what it returns while holding the event lock, so a
caller never observes a half-applied transition. Unknown event ids raise
NotFound. The only gated read is get_own_digest.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from foresight.clock import Clock
from foresight.engine.authorization import AccessControl
from foresight.engine.store import EventStore
from foresight.errors import NotFound, Unauthorized
from foresight.models.commitment import CommitmentStatus
from foresight.models.event import EventSnapshot, PredictionStats, RoundInfo


class QueryLayer:
    """Batch and single-item read accessors."""

    def __init__(self, store: EventStore, access: AccessControl, clock: Clock) -> None:
        self._store = store
        self._access = access
        self._clock = clock

    def get_event(self, event_id: int) -> EventSnapshot:
        with self._store.locked(event_id) as event:
            return event.snapshot()

    def get_total_events(self) -> int:
        return self._store.total_events

    def get_event_creator(self, event_id: int) -> str:
        return self._store.get(event_id).creator

    def get_participants(self, event_id: int) -> list[str]:
        """Committed principals in the order they committed."""
        return self._store.participants(event_id)

    def get_commitment_status(self, event_id: int, principal: str) -> CommitmentStatus:
        commitment = self._store.get_commitment(event_id, principal)
        if commitment is None:
            return CommitmentStatus(exists=False)
        return CommitmentStatus(
            exists=True,
            submitted_utc=commitment.submitted_utc,
            revealed=commitment.revealed,
            correct=commitment.correct,
        )

    def batch_get_commitment_status(
        self,
        event_id: int,
        principals: Sequence[str],
    ) -> list[bool]:
        """Existence flags aligned with `principals`, taken from one snapshot."""
        with self._store.locked(event_id):
            return [
                self._store.get_commitment(event_id, p) is not None
                for p in principals
            ]

    def get_current_round_info(self, event_id: int) -> RoundInfo:
        with self._store.locked(event_id) as event:
            now = self._clock.now()
            remaining = (event.deadline_utc - now).total_seconds()
            return RoundInfo(
                round_counter=event.round_counter,
                active=event.active,
                time_remaining_seconds=max(0, math.ceil(remaining)),
            )

    def get_prediction_stats(self, event_id: int) -> PredictionStats:
        with self._store.locked(event_id) as event:
            return PredictionStats(
                total=event.commitment_count,
                finalized=event.finalized,
                active=event.active,
            )

    def is_commit_window_open(self, event_id: int) -> bool:
        with self._store.locked(event_id) as event:
            return event.accepts_commitments(self._clock.now())

    def get_own_digest(
        self,
        requester: str,
        event_id: int,
        principal: Optional[str] = None,
    ) -> str:
        """Return a principal's digest to that principal or the administrator.

        `principal` defaults to the requester.
        """
        target = principal if principal is not None else requester
        self._store.get(event_id)
        if not self._access.can_read_own_digest(target, requester):
            raise Unauthorized(
                f"{requester!r} may not read the digest of {target!r} on event {event_id}"
            )
        commitment = self._store.get_commitment(event_id, target)
        if commitment is None:
            raise NotFound(f"No prediction found for {target} on event {event_id}")
        return commitment.digest

    def verify_integrity(self, event_id: int, principal: str) -> tuple[bool, Optional[str]]:
        """Public existence-and-digest check. The digest alone hides the choice."""
        commitment = self._store.get_commitment(event_id, principal)
        if commitment is None:
            return False, None
        return True, commitment.digest
