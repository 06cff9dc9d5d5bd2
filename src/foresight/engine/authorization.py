"""Authorization layer — administrator, creator and self permissions.

The administrator is held by an AccessControl instance owned by one
service, not by module state, so independent engines never share a
role table.

Role rules:
- pause / resume: administrator only.
- finalize / advance round: event creator or administrator.
- read own digest: the committing principal or the administrator.
- transfer administrator: current administrator only.
"""

from __future__ import annotations

import threading

from foresight.errors import Unauthorized, ValidationError
from foresight.models.event import PredictionEvent


class AccessControl:
    """Resolves roles for every mutating and sensitive read operation.

    Usage:
        access = AccessControl("admin")
        access.require_finalizer(event, caller, "finalize event")
        previous = access.transfer_administrator("admin", "ops-lead")
    """

    def __init__(self, administrator: str) -> None:
        self._administrator = _validate_identity(administrator)
        self._lock = threading.Lock()

    @property
    def administrator(self) -> str:
        with self._lock:
            return self._administrator

    def is_administrator(self, principal: str) -> bool:
        return bool(principal) and principal == self.administrator

    @staticmethod
    def is_creator(event: PredictionEvent, principal: str) -> bool:
        return bool(principal) and event.creator == principal

    def can_finalize(self, event: PredictionEvent, principal: str) -> bool:
        return self.is_creator(event, principal) or self.is_administrator(principal)

    def can_pause(self, principal: str) -> bool:
        return self.is_administrator(principal)

    def can_resume(self, principal: str) -> bool:
        return self.is_administrator(principal)

    def can_read_own_digest(self, principal: str, requester: str) -> bool:
        return (bool(requester) and requester == principal) or self.is_administrator(requester)

    def require_finalizer(
        self,
        event: PredictionEvent,
        principal: str,
        action: str,
    ) -> None:
        if not self.can_finalize(event, principal):
            raise Unauthorized(
                f"{action}: {principal!r} is neither creator of event "
                f"{event.event_id} nor administrator"
            )

    def transfer_administrator(self, caller: str, new_administrator: str) -> str:
        """Hand the administrator role to a new principal.

        Returns the previous administrator.
        """
        new_admin = _validate_identity(new_administrator)
        with self._lock:
            if not caller or caller != self._administrator:
                raise Unauthorized(
                    f"transfer administrator: {caller!r} is not the administrator"
                )
            previous = self._administrator
            self._administrator = new_admin
            return previous


def _validate_identity(principal: object) -> str:
    if not isinstance(principal, str) or not principal.strip():
        raise ValidationError("Principal identity must be a non-empty string")
    return principal
