"""Tests for the reveal engine — proves reveals match commitments exactly once."""

import pytest
from datetime import datetime, timezone

from foresight.clock import ManualClock
from foresight.engine.authorization import AccessControl
from foresight.engine.lifecycle import LifecycleManager
from foresight.engine.reveal import RevealEngine
from foresight.engine.store import EventStore
from foresight.errors import CommitmentMismatch, InvalidState, NotFound, ValidationError
from foresight.models.commitment import CommitmentState


WEEK = 7 * 24 * 60 * 60


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


class _Harness:
    def __init__(self) -> None:
        self.clock = ManualClock(_now())
        self.store = EventStore(self.clock)
        self.lifecycle = LifecycleManager(self.store, AccessControl("admin"), self.clock)
        self.engine = RevealEngine(self.store)
        self.event_id = self.lifecycle.create_event("alice", "t", "d", WEEK).event_id

    def finalize(self, outcome: bool) -> None:
        self.clock.advance(seconds=WEEK)
        self.lifecycle.finalize_event("alice", self.event_id, outcome)


class TestReveal:
    def test_correct_prediction(self) -> None:
        h = _Harness()
        h.store.submit_choice("bob", h.event_id, True)
        h.finalize(True)
        revealed = h.engine.reveal("bob", h.event_id, True)
        assert revealed.state == CommitmentState.REVEALED
        assert revealed.correct is True

    def test_incorrect_prediction(self) -> None:
        h = _Harness()
        h.store.submit_choice("carol", h.event_id, False)
        h.finalize(True)
        assert h.engine.reveal("carol", h.event_id, False).correct is False

    def test_mismatch_changes_nothing(self) -> None:
        h = _Harness()
        h.store.submit_choice("bob", h.event_id, True)
        h.finalize(True)
        with pytest.raises(CommitmentMismatch):
            h.engine.reveal("bob", h.event_id, False)
        stored = h.store.get_commitment(h.event_id, "bob")
        assert stored is not None
        assert not stored.revealed
        assert stored.correct is None
        # the honest reveal still works afterwards
        assert h.engine.reveal("bob", h.event_id, True).correct is True

    def test_reveal_only_once(self) -> None:
        h = _Harness()
        h.store.submit_choice("bob", h.event_id, True)
        h.finalize(False)
        h.engine.reveal("bob", h.event_id, True)
        with pytest.raises(InvalidState, match="Already revealed"):
            h.engine.reveal("bob", h.event_id, True)
        assert h.store.get_commitment(h.event_id, "bob").correct is False

    def test_before_finalize(self) -> None:
        h = _Harness()
        h.store.submit_choice("bob", h.event_id, True)
        with pytest.raises(InvalidState, match="not finalized"):
            h.engine.reveal("bob", h.event_id, True)

    def test_no_commitment(self) -> None:
        h = _Harness()
        h.finalize(True)
        with pytest.raises(NotFound, match="No prediction found"):
            h.engine.reveal("dave", h.event_id, True)

    def test_no_commitment_before_finalize(self) -> None:
        h = _Harness()
        with pytest.raises(NotFound):
            h.engine.reveal("dave", h.event_id, True)

    def test_unknown_event(self) -> None:
        h = _Harness()
        with pytest.raises(NotFound):
            h.engine.reveal("bob", 99, True)

    def test_non_bool_choice(self) -> None:
        h = _Harness()
        with pytest.raises(ValidationError):
            h.engine.reveal("bob", h.event_id, None)  # type: ignore[arg-type]

    def test_reveal_keeps_digest(self) -> None:
        h = _Harness()
        commitment, _ = h.store.submit_choice("bob", h.event_id, True)
        h.finalize(True)
        revealed = h.engine.reveal("bob", h.event_id, True)
        assert revealed.digest == commitment.digest
        assert revealed.submitted_utc == commitment.submitted_utc
