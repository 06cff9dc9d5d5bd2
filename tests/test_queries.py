"""Tests for the query layer — proves reads are consistent and gated where required."""

import pytest
from datetime import datetime, timezone

from foresight.clock import ManualClock
from foresight.engine.authorization import AccessControl
from foresight.engine.lifecycle import LifecycleManager
from foresight.engine.queries import QueryLayer
from foresight.engine.reveal import RevealEngine
from foresight.engine.store import EventStore
from foresight.errors import NotFound, Unauthorized


WEEK = 7 * 24 * 60 * 60


def _now() -> datetime:
    return datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)


def _setup() -> tuple[QueryLayer, EventStore, LifecycleManager, ManualClock, int]:
    clock = ManualClock(_now())
    store = EventStore(clock)
    access = AccessControl("admin")
    lifecycle = LifecycleManager(store, access, clock)
    queries = QueryLayer(store, access, clock)
    event_id = lifecycle.create_event("alice", "BTC>100k", "desc", WEEK).event_id
    return queries, store, lifecycle, clock, event_id


class TestEventQueries:
    def test_snapshot(self) -> None:
        queries, store, _, _, event_id = _setup()
        store.submit_choice("bob", event_id, True)
        snap = queries.get_event(event_id)
        assert snap.title == "BTC>100k"
        assert snap.creator == "alice"
        assert snap.commitment_count == 1
        assert snap.active and not snap.finalized
        assert snap.outcome is None

    def test_snapshot_is_detached(self) -> None:
        queries, store, _, _, event_id = _setup()
        snap = queries.get_event(event_id)
        store.submit_choice("bob", event_id, True)
        assert snap.commitment_count == 0

    def test_unknown_event(self) -> None:
        queries, _, _, _, _ = _setup()
        with pytest.raises(NotFound):
            queries.get_event(5)
        with pytest.raises(NotFound):
            queries.get_event_creator(5)

    def test_totals_and_creator(self) -> None:
        queries, _, lifecycle, _, event_id = _setup()
        lifecycle.create_event("bob", "t", "d", 60)
        assert queries.get_total_events() == 2
        assert queries.get_event_creator(event_id) == "alice"
        assert queries.get_event_creator(1) == "bob"

    def test_participants_in_commit_order(self) -> None:
        queries, store, _, _, event_id = _setup()
        for name in ("carol", "bob", "dave"):
            store.submit_choice(name, event_id, True)
        assert queries.get_participants(event_id) == ["carol", "bob", "dave"]


class TestCommitmentQueries:
    def test_status_lifecycle(self) -> None:
        queries, store, lifecycle, clock, event_id = _setup()
        assert not queries.get_commitment_status(event_id, "bob").exists

        store.submit_choice("bob", event_id, True)
        status = queries.get_commitment_status(event_id, "bob")
        assert status.exists
        assert status.submitted_utc == _now()
        assert not status.revealed
        assert status.correct is None

        clock.advance(seconds=WEEK)
        lifecycle.finalize_event("alice", event_id, True)
        RevealEngine(store).reveal("bob", event_id, True)
        status = queries.get_commitment_status(event_id, "bob")
        assert status.revealed
        assert status.correct is True

    def test_batch_status_aligned(self) -> None:
        queries, store, _, _, event_id = _setup()
        store.submit_choice("bob", event_id, True)
        store.submit_choice("dave", event_id, False)
        assert queries.batch_get_commitment_status(
            event_id, ["bob", "carol", "dave", "bob"]
        ) == [True, False, True, True]

    def test_batch_status_empty(self) -> None:
        queries, _, _, _, event_id = _setup()
        assert queries.batch_get_commitment_status(event_id, []) == []

    def test_verify_integrity(self) -> None:
        queries, store, _, _, event_id = _setup()
        commitment, _ = store.submit_choice("bob", event_id, True)
        assert queries.verify_integrity(event_id, "bob") == (True, commitment.digest)
        assert queries.verify_integrity(event_id, "carol") == (False, None)


class TestOwnDigest:
    def test_self_and_admin(self) -> None:
        queries, store, _, _, event_id = _setup()
        commitment, _ = store.submit_choice("bob", event_id, True)
        assert queries.get_own_digest("bob", event_id) == commitment.digest
        assert queries.get_own_digest("admin", event_id, "bob") == commitment.digest

    def test_other_principal_rejected(self) -> None:
        queries, store, _, _, event_id = _setup()
        store.submit_choice("bob", event_id, True)
        with pytest.raises(Unauthorized):
            queries.get_own_digest("carol", event_id, "bob")

    def test_missing_commitment(self) -> None:
        queries, _, _, _, event_id = _setup()
        with pytest.raises(NotFound):
            queries.get_own_digest("bob", event_id)

    def test_missing_event_before_role(self) -> None:
        queries, _, _, _, _ = _setup()
        with pytest.raises(NotFound):
            queries.get_own_digest("carol", 9, "bob")


class TestRoundInfoAndStats:
    def test_round_info(self) -> None:
        queries, _, lifecycle, clock, event_id = _setup()
        clock.advance(seconds=100)
        lifecycle.advance_round("alice", event_id)
        info = queries.get_current_round_info(event_id)
        assert info.round_counter == 2
        assert info.active
        assert info.time_remaining_seconds == WEEK - 100

    def test_partial_second_rounds_up(self) -> None:
        queries, _, _, clock, event_id = _setup()
        clock.advance(seconds=WEEK - 0.5)
        assert queries.is_commit_window_open(event_id)
        assert queries.get_current_round_info(event_id).time_remaining_seconds == 1

    def test_time_remaining_floors_at_zero(self) -> None:
        queries, _, _, clock, event_id = _setup()
        clock.advance(seconds=WEEK + 500)
        assert queries.get_current_round_info(event_id).time_remaining_seconds == 0

    def test_stats(self) -> None:
        queries, store, lifecycle, clock, event_id = _setup()
        store.submit_choice("bob", event_id, True)
        store.submit_choice("carol", event_id, False)
        stats = queries.get_prediction_stats(event_id)
        assert (stats.total, stats.finalized, stats.active) == (2, False, True)
        clock.advance(seconds=WEEK)
        lifecycle.finalize_event("admin", event_id, True)
        stats = queries.get_prediction_stats(event_id)
        assert (stats.total, stats.finalized, stats.active) == (2, True, False)

    def test_commit_window(self) -> None:
        queries, _, lifecycle, clock, event_id = _setup()
        assert queries.is_commit_window_open(event_id)
        lifecycle.pause_event("admin", event_id)
        assert not queries.is_commit_window_open(event_id)
        lifecycle.resume_event("admin", event_id)
        clock.advance(seconds=WEEK)
        assert not queries.is_commit_window_open(event_id)
