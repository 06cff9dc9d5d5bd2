"""Commitment record models.

A commitment is one principal's hidden prediction on one event. The
digest binds the choice to the principal and to a commit context that
contains a secret salt, so the choice cannot be brute-forced from
public data before reveal.

Commitment lifecycle: COMMITTED → REVEALED (terminal).

Records are immutable. Revealing replaces the stored record with a new
one in REVEALED state; digest, context and submission time are copied
unchanged.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from foresight.errors import InvalidState


class CommitmentState(str, enum.Enum):
    """Lifecycle state of a commitment."""
    COMMITTED = "committed"
    REVEALED = "revealed"


@dataclass(frozen=True)
class CommitContext:
    """Verification context fixed at commit time.

    submitted_at: ISO-8601 UTC timestamp of the commit (public).
    salt: hex-encoded secret chosen by the committing principal.
    """
    submitted_at: str
    salt: str


@dataclass(frozen=True)
class Commitment:
    """A single stored commitment, keyed by (event_id, principal)."""
    event_id: int
    principal: str
    digest: str
    context: CommitContext
    submitted_utc: datetime
    round_committed: int
    state: CommitmentState = CommitmentState.COMMITTED
    correct: Optional[bool] = None

    @property
    def revealed(self) -> bool:
        return self.state == CommitmentState.REVEALED

    def revealed_as(self, correct: bool) -> Commitment:
        """Return the REVEALED successor of this record."""
        if self.revealed:
            raise InvalidState(
                f"Commitment for {self.principal} on event {self.event_id} "
                f"already revealed"
            )
        return replace(self, state=CommitmentState.REVEALED, correct=correct)


@dataclass(frozen=True)
class CommitmentStatus:
    """Public status of a principal's commitment. Never includes the salt."""
    exists: bool
    submitted_utc: Optional[datetime] = None
    revealed: bool = False
    correct: Optional[bool] = None
