"""Append-only notification log — the ordered record of every state change.

Every successful command produces one notification that is appended to
the log. Notifications are immutable once written. External
collaborators read the log instead of touching event or commitment
records directly.

Order guarantee: the service appends while holding the lock of the
event it changed, so for any single event the log order equals the
order in which its changes took effect.
"""

from __future__ import annotations

import enum
import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of notifications."""
    EVENT_CREATED = "EventCreated"
    COMMITMENT_MADE = "CommitmentMade"
    EVENT_FINALIZED = "EventFinalized"
    REVEALED = "Revealed"
    ROUND_ADVANCED = "RoundAdvanced"
    EVENT_PAUSED = "EventPaused"
    EVENT_RESUMED = "EventResumed"
    ADMINISTRATOR_TRANSFERRED = "AdministratorTransferred"


def _canonical_hash(
    record_id: str,
    kind_value: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "record_id": record_id,
            "kind": kind_value,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable notification.

    The record_hash is computed at creation time over the canonical JSON
    of every other field, so tampering is detectable on reload.
    """
    record_id: str
    kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    record_hash: str

    @staticmethod
    def create(
        record_id: str,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new notification with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            record_id=record_id,
            kind=kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            record_hash=_canonical_hash(
                record_id, kind.value, ts_str, actor_id, payload,
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "kind": self.kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "record_hash": self.record_hash,
        }


class EventLog:
    """Append-only notification log with optional file persistence.

    Records can only be appended, never modified or deleted. The log can
    be persisted to a JSONL file (one JSON object per line) and loaded
    back for recovery.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[EventRecord] = []
        self._record_ids: set[str] = set()
        self._storage_path = storage_path
        self._lock = threading.Lock()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, record: EventRecord) -> None:
        """Append a notification.

        Raises ValueError if record_id is a duplicate (replay protection).
        """
        with self._lock:
            if record.record_id in self._record_ids:
                raise ValueError(f"Duplicate record ID: {record.record_id}")
            if self._storage_path:
                self._append_to_file(record)
            self._records.append(record)
            self._record_ids.add(record.record_id)

    def records(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return notifications, optionally filtered by kind."""
        with self._lock:
            if kind is None:
                return list(self._records)
            return [r for r in self._records if r.kind == kind]

    def records_for_event(self, event_id: int) -> list[EventRecord]:
        with self._lock:
            return [r for r in self._records if r.payload.get("event_id") == event_id]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def last_record(self) -> Optional[EventRecord]:
        with self._lock:
            return self._records[-1] if self._records else None

    def _append_to_file(self, record: EventRecord) -> None:
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load notifications from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate record IDs (replay protection on recovery).
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                record_id = data["record_id"]
                if record_id in self._record_ids:
                    raise ValueError(
                        f"Duplicate record ID on recovery (line {line_num}): {record_id}"
                    )

                expected_hash = _canonical_hash(
                    data["record_id"],
                    data["kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["record_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): record {record_id} "
                        f"stored hash {data['record_hash']} != computed {expected_hash}"
                    )

                record = EventRecord(
                    record_id=record_id,
                    kind=EventKind(data["kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    record_hash=data["record_hash"],
                )
                self._records.append(record)
                self._record_ids.add(record_id)
