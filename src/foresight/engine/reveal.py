"""Reveal engine — verifies a revealed choice against its commitment.

Reveal steps, all under the event lock:
1. Look up the caller's commitment (NotFound if absent).
2. Require the event to be finalized (InvalidState).
3. Require the commitment not yet revealed (InvalidState).
4. Recompute the digest from the revealed choice, the caller and the
   stored commit context.
5. On mismatch raise CommitmentMismatch; nothing is changed.
6. Otherwise store the REVEALED successor with correct = (choice == outcome).
"""

from __future__ import annotations

from foresight.crypto.commitment_codec import verify_digest
from foresight.engine.store import EventStore
from foresight.errors import CommitmentMismatch, InvalidState, NotFound, ValidationError
from foresight.models.commitment import Commitment


class RevealEngine:
    """Checks reveals and records correctness.

    Usage:
        engine = RevealEngine(store)
        revealed = engine.reveal("bob", event_id, True)
        revealed.correct  # True if bob predicted the outcome
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    def reveal(self, caller: str, event_id: int, choice: bool) -> Commitment:
        """Reveal `choice` for the caller's commitment. Returns the updated record."""
        if not isinstance(choice, bool):
            raise ValidationError(f"choice must be a bool, got {type(choice).__name__}")

        with self._store.locked(event_id) as event:
            commitment = self._store.get_commitment(event_id, caller)
            if commitment is None:
                raise NotFound(f"No prediction found for {caller} on event {event_id}")
            if not event.finalized:
                raise InvalidState(f"Event not finalized yet: {event_id}")
            if commitment.revealed:
                raise InvalidState(f"Already revealed: {caller} on event {event_id}")

            if not verify_digest(choice, caller, commitment.context, commitment.digest):
                raise CommitmentMismatch(
                    f"Invalid reveal for {caller} on event {event_id}: "
                    f"choice does not match commitment"
                )

            updated = commitment.revealed_as(correct=(choice == event.outcome))
            self._store.replace_commitment(updated)
            return updated
