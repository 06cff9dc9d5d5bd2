"""Tests for access control — proves role rules for every gated operation."""

import pytest
from datetime import datetime, timedelta, timezone

from foresight.engine.authorization import AccessControl
from foresight.errors import Unauthorized, ValidationError
from foresight.models.event import PredictionEvent


def _event(creator: str = "alice") -> PredictionEvent:
    now = datetime(2026, 2, 16, 12, 0, 0, tzinfo=timezone.utc)
    return PredictionEvent(
        event_id=0,
        title="t",
        description="d",
        creator=creator,
        created_utc=now,
        deadline_utc=now + timedelta(days=7),
    )


class TestRoles:
    def test_administrator(self) -> None:
        access = AccessControl("admin")
        assert access.is_administrator("admin")
        assert not access.is_administrator("alice")
        assert not access.is_administrator("")

    def test_finalizer(self) -> None:
        access = AccessControl("admin")
        event = _event()
        assert access.can_finalize(event, "alice")
        assert access.can_finalize(event, "admin")
        assert not access.can_finalize(event, "bob")

    def test_pause_and_resume_admin_only(self) -> None:
        access = AccessControl("admin")
        assert access.can_pause("admin")
        assert not access.can_pause("alice")
        assert access.can_resume("admin")
        assert not access.can_resume("alice")

    def test_own_digest(self) -> None:
        access = AccessControl("admin")
        assert access.can_read_own_digest("bob", "bob")
        assert access.can_read_own_digest("bob", "admin")
        assert not access.can_read_own_digest("bob", "carol")

    def test_require_finalizer_raises(self) -> None:
        access = AccessControl("admin")
        with pytest.raises(Unauthorized, match="neither creator"):
            access.require_finalizer(_event(), "bob", "finalize event")

    def test_blank_administrator_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AccessControl(" ")


class TestTransfer:
    def test_transfer(self) -> None:
        access = AccessControl("admin")
        assert access.transfer_administrator("admin", "ops") == "admin"
        assert access.administrator == "ops"
        assert not access.is_administrator("admin")

    def test_non_admin_cannot_transfer(self) -> None:
        access = AccessControl("admin")
        with pytest.raises(Unauthorized):
            access.transfer_administrator("alice", "alice")
        assert access.administrator == "admin"

    def test_blank_new_administrator(self) -> None:
        access = AccessControl("admin")
        with pytest.raises(ValidationError):
            access.transfer_administrator("admin", "")
