"""Foresight service — unified command/query facade for the prediction engine.

This is the primary interface for programmatic access. It orchestrates
all subsystems:
- Event lifecycle (create, pause, resume, advance round, finalize)
- Commitments (precomputed digest or server-generated context)
- Reveal verification and scoring
- Role management (administrator transfer)
- Read queries

Every command returns a ServiceResult. Engine components raise typed
errors; the facade converts them into a failed result carrying exactly
one ErrorKind. Every successful state change is appended to the
notification log while the affected event is still locked. If the
notification cannot be written the change is rolled back, so no state
change ever exists without its notification.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from foresight.clock import Clock, SystemClock
from foresight.config import ForesightConfig
from foresight.engine.authorization import AccessControl
from foresight.engine.lifecycle import LifecycleManager
from foresight.engine.queries import QueryLayer
from foresight.engine.reveal import RevealEngine
from foresight.engine.store import EventStore
from foresight.errors import ErrorKind, ForesightError
from foresight.models.commitment import CommitContext
from foresight.persistence.event_log import EventKind, EventLog, EventRecord


logger = logging.getLogger(__name__)

RECORD_ID_PREFIX = "NTF"


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    error_kind is set on every failure caused by a rejected command. It
    is None for successes and for notification-log failures.
    """
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None


class ForesightService:
    """Prediction engine facade.

    Usage:
        config = ForesightConfig(administrator="admin")
        service = ForesightService(config)

        result = service.create_event("alice", "BTC>100k", "desc", 604_800)
        event_id = result.data["event_id"]
        service.submit_choice("bob", event_id, True)

        # after the deadline
        service.finalize_event("alice", event_id, True)
        result = service.reveal("bob", event_id, True)
        result.data["correct"]  # True

    Persistence (optional):
        service = ForesightService(config, event_log=EventLog(Path("events.jsonl")))
    """

    def __init__(
        self,
        config: ForesightConfig,
        clock: Optional[Clock] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._config = config
        self._clock = clock or SystemClock()
        if event_log is None:
            event_log = EventLog(storage_path=config.event_log_path)
        self._event_log = event_log

        self._access = AccessControl(config.administrator)
        self._store = EventStore(
            self._clock,
            salt_bytes=config.salt_bytes,
            first_event_id=_next_event_id(event_log),
        )
        self._lifecycle = LifecycleManager(
            self._store, self._access, self._clock,
            max_duration_seconds=config.max_duration_seconds,
        )
        self._reveal_engine = RevealEngine(self._store)
        self._queries = QueryLayer(self._store, self._access, self._clock)

        # Serializes event creation and role transfer so their rollbacks
        # never race another allocation.
        self._registry_lock = threading.Lock()
        self._record_lock = threading.Lock()
        # Seed from the highest persisted id; failed appends leave gaps.
        self._record_counter = _highest_record_number(event_log)

    # ------------------------------------------------------------------
    # Event lifecycle
    # ------------------------------------------------------------------

    def create_event(
        self,
        caller: str,
        title: str,
        description: str,
        duration_seconds: int,
    ) -> ServiceResult:
        """Create a prediction event owned by `caller`."""
        try:
            with self._registry_lock:
                event = self._lifecycle.create_event(
                    caller, title, description, duration_seconds,
                )
                with self._store.locked(event.event_id):
                    err = self._notify(
                        EventKind.EVENT_CREATED,
                        caller,
                        {
                            "event_id": event.event_id,
                            "title": event.title,
                            "deadline": event.deadline_utc.isoformat(),
                            "creator": event.creator,
                        },
                        on_rollback=lambda: self._store.discard_event(event.event_id),
                    )
        except ForesightError as e:
            return self._rejected("create_event", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("event %d created by %s, deadline %s",
                    event.event_id, caller, event.deadline_utc.isoformat())
        return ServiceResult(
            success=True,
            data={
                "event_id": event.event_id,
                "deadline": event.deadline_utc,
                "round": event.round_counter,
            },
        )

    def pause_event(self, caller: str, event_id: int) -> ServiceResult:
        """Stop accepting commitments (administrator only)."""
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                changed = self._lifecycle.pause_event(caller, event_id)
                err = None
                if changed:
                    err = self._notify(
                        EventKind.EVENT_PAUSED, caller, {"event_id": event_id},
                        on_rollback=lambda: self._store.restore(checkpoint),
                    )
        except ForesightError as e:
            return self._rejected("pause_event", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        if changed:
            logger.info("event %d paused by %s", event_id, caller)
        return ServiceResult(success=True, data={"event_id": event_id, "changed": changed})

    def resume_event(self, caller: str, event_id: int) -> ServiceResult:
        """Accept commitments again (administrator only)."""
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                changed = self._lifecycle.resume_event(caller, event_id)
                err = None
                if changed:
                    err = self._notify(
                        EventKind.EVENT_RESUMED, caller, {"event_id": event_id},
                        on_rollback=lambda: self._store.restore(checkpoint),
                    )
        except ForesightError as e:
            return self._rejected("resume_event", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        if changed:
            logger.info("event %d resumed by %s", event_id, caller)
        return ServiceResult(success=True, data={"event_id": event_id, "changed": changed})

    def advance_round(self, caller: str, event_id: int) -> ServiceResult:
        """Increment the event's round counter (creator or administrator)."""
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                new_round = self._lifecycle.advance_round(caller, event_id)
                err = self._notify(
                    EventKind.ROUND_ADVANCED,
                    caller,
                    {"event_id": event_id, "new_round": new_round},
                    on_rollback=lambda: self._store.restore(checkpoint),
                )
        except ForesightError as e:
            return self._rejected("advance_round", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("event %d advanced to round %d by %s", event_id, new_round, caller)
        return ServiceResult(success=True, data={"event_id": event_id, "round": new_round})

    def finalize_event(self, caller: str, event_id: int, outcome: bool) -> ServiceResult:
        """Fix the event's real outcome (creator or administrator, after deadline)."""
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                event = self._lifecycle.finalize_event(caller, event_id, outcome)
                final_round = event.round_counter
                err = self._notify(
                    EventKind.EVENT_FINALIZED,
                    caller,
                    {
                        "event_id": event_id,
                        "outcome": outcome,
                        "final_round": final_round,
                    },
                    on_rollback=lambda: self._store.restore(checkpoint),
                )
        except ForesightError as e:
            return self._rejected("finalize_event", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("event %d finalized by %s in round %d", event_id, caller, final_round)
        return ServiceResult(
            success=True,
            data={"event_id": event_id, "outcome": outcome, "final_round": final_round},
        )

    # ------------------------------------------------------------------
    # Commitments and reveal
    # ------------------------------------------------------------------

    def submit_commitment(
        self,
        caller: str,
        event_id: int,
        digest: str,
        context: CommitContext,
    ) -> ServiceResult:
        """Store a digest the caller computed with its own commit context."""
        return self._commit(
            caller, event_id,
            lambda: (self._store.submit_commitment(caller, event_id, digest, context), None),
        )

    def submit_choice(self, caller: str, event_id: int, choice: bool) -> ServiceResult:
        """Commit to `choice` with a freshly generated secret context.

        The returned data carries the context. Its salt is the caller's
        secret until reveal and is never logged.
        """
        return self._commit(
            caller, event_id,
            lambda: self._store.submit_choice(caller, event_id, choice),
        )

    def _commit(
        self,
        caller: str,
        event_id: int,
        submit: Callable[[], tuple[Any, Optional[CommitContext]]],
    ) -> ServiceResult:
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                commitment, context = submit()
                err = self._notify(
                    EventKind.COMMITMENT_MADE,
                    caller,
                    {
                        "event_id": event_id,
                        "principal": caller,
                        "round_counter": commitment.round_committed,
                    },
                    on_rollback=lambda: self._store.restore(checkpoint),
                    timestamp=commitment.submitted_utc,
                )
        except ForesightError as e:
            return self._rejected("submit_commitment", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("commitment by %s on event %d (round %d)",
                    caller, event_id, commitment.round_committed)
        data: dict[str, Any] = {
            "event_id": event_id,
            "principal": caller,
            "digest": commitment.digest,
            "submitted_utc": commitment.submitted_utc,
            "round": commitment.round_committed,
        }
        if context is not None:
            data["context"] = context
        return ServiceResult(success=True, data=data)

    def reveal(self, caller: str, event_id: int, choice: bool) -> ServiceResult:
        """Disclose the committed choice and score it against the outcome."""
        try:
            with self._store.locked(event_id):
                checkpoint = self._store.checkpoint(event_id)
                revealed = self._reveal_engine.reveal(caller, event_id, choice)
                err = self._notify(
                    EventKind.REVEALED,
                    caller,
                    {
                        "event_id": event_id,
                        "principal": caller,
                        "choice": choice,
                        "correct": revealed.correct,
                    },
                    on_rollback=lambda: self._store.restore(checkpoint),
                )
        except ForesightError as e:
            return self._rejected("reveal", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("reveal by %s on event %d: correct=%s", caller, event_id, revealed.correct)
        return ServiceResult(
            success=True,
            data={"event_id": event_id, "principal": caller, "correct": revealed.correct},
        )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @property
    def administrator(self) -> str:
        return self._access.administrator

    def transfer_administrator(self, caller: str, new_administrator: str) -> ServiceResult:
        """Hand the administrator role to another principal."""
        try:
            with self._registry_lock:
                previous = self._access.transfer_administrator(caller, new_administrator)
                err = self._notify(
                    EventKind.ADMINISTRATOR_TRANSFERRED,
                    caller,
                    {"previous": previous, "new": new_administrator},
                    on_rollback=lambda: self._access.transfer_administrator(
                        new_administrator, previous,
                    ),
                )
        except ForesightError as e:
            return self._rejected("transfer_administrator", caller, e)
        if err:
            return ServiceResult(success=False, errors=[err])

        logger.info("administrator transferred from %s to %s", previous, new_administrator)
        return ServiceResult(
            success=True,
            data={"previous": previous, "administrator": new_administrator},
        )

    def is_administrator(self, principal: str) -> bool:
        return self._access.is_administrator(principal)

    def is_creator(self, event_id: int, principal: str) -> bool:
        return self._access.is_creator(self._store.get(event_id), principal)

    def can_finalize(self, event_id: int, principal: str) -> bool:
        return self._access.can_finalize(self._store.get(event_id), principal)

    def can_read_own_digest(self, principal: str, requester: str) -> bool:
        return self._access.can_read_own_digest(principal, requester)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_event(self, event_id: int) -> ServiceResult:
        """Look up an event. data["event"] is an EventSnapshot."""
        return self._query(lambda: {"event": self._queries.get_event(event_id)})

    def get_total_events(self) -> int:
        return self._queries.get_total_events()

    def get_event_creator(self, event_id: int) -> ServiceResult:
        return self._query(lambda: {"creator": self._queries.get_event_creator(event_id)})

    def get_participants(self, event_id: int) -> ServiceResult:
        return self._query(
            lambda: {"participants": self._queries.get_participants(event_id)}
        )

    def get_commitment_status(self, event_id: int, principal: str) -> ServiceResult:
        return self._query(
            lambda: {"status": self._queries.get_commitment_status(event_id, principal)}
        )

    def batch_get_commitment_status(
        self,
        event_id: int,
        principals: Sequence[str],
    ) -> ServiceResult:
        return self._query(
            lambda: {
                "statuses": self._queries.batch_get_commitment_status(event_id, principals)
            }
        )

    def get_current_round_info(self, event_id: int) -> ServiceResult:
        return self._query(
            lambda: {"round_info": self._queries.get_current_round_info(event_id)}
        )

    def get_prediction_stats(self, event_id: int) -> ServiceResult:
        return self._query(lambda: {"stats": self._queries.get_prediction_stats(event_id)})

    def is_commit_window_open(self, event_id: int) -> ServiceResult:
        return self._query(
            lambda: {"open": self._queries.is_commit_window_open(event_id)}
        )

    def get_own_digest(
        self,
        requester: str,
        event_id: int,
        principal: Optional[str] = None,
    ) -> ServiceResult:
        return self._query(
            lambda: {"digest": self._queries.get_own_digest(requester, event_id, principal)}
        )

    def verify_integrity(self, event_id: int, principal: str) -> ServiceResult:
        def _run() -> dict[str, Any]:
            exists, digest = self._queries.verify_integrity(event_id, principal)
            return {"exists": exists, "digest": digest}
        return self._query(_run)

    # ------------------------------------------------------------------
    # Notification log
    # ------------------------------------------------------------------

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def notifications(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        return self._event_log.records(kind)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _query(self, run: Callable[[], dict[str, Any]]) -> ServiceResult:
        try:
            return ServiceResult(success=True, data=run())
        except ForesightError as e:
            return ServiceResult(success=False, errors=[str(e)], error_kind=e.kind)

    def _rejected(self, action: str, caller: str, error: ForesightError) -> ServiceResult:
        logger.warning("%s rejected for %s: %s (%s)", action, caller, error, error.kind.value)
        return ServiceResult(success=False, errors=[str(error)], error_kind=error.kind)

    def _next_record_id(self) -> str:
        """Generate a sequential notification ID."""
        with self._record_lock:
            self._record_counter += 1
            return f"{RECORD_ID_PREFIX}-{self._record_counter:08d}"

    def _notify(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        on_rollback: Callable[[], None],
        timestamp: Optional[datetime] = None,
    ) -> Optional[str]:
        """Append a notification. Returns an error string or None.

        Fail-closed: if the log rejects the record, the state change it
        describes is rolled back before returning.
        """
        try:
            record = EventRecord.create(
                record_id=self._next_record_id(),
                kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=timestamp or self._clock.now(),
            )
            self._event_log.append(record)
        except (ValueError, OSError) as e:
            on_rollback()
            logger.error("notification %s failed, change rolled back: %s", kind.value, e)
            return f"Notification log failure: {e}"
        return None


def _next_event_id(event_log: EventLog) -> int:
    """One past the highest event id announced in a reloaded log."""
    ids = [
        r.payload["event_id"]
        for r in event_log.records(EventKind.EVENT_CREATED)
        if isinstance(r.payload.get("event_id"), int)
    ]
    return max(ids) + 1 if ids else 0


def _highest_record_number(event_log: EventLog) -> int:
    highest = 0
    for record in event_log.records():
        prefix, _, number = record.record_id.partition("-")
        if prefix == RECORD_ID_PREFIX and number.isdigit():
            highest = max(highest, int(number))
    return highest


__all__ = ["ForesightService", "ServiceResult"]
