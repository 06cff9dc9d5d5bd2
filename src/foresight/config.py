"""Engine configuration loaded from a JSON parameter file.

The parameter file lives in a config directory (``config/foresight_params.json``
by default). Every value has a default except the administrator identity,
which must be supplied either in the file or by the caller.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from foresight.errors import ValidationError


PARAMS_FILENAME = "foresight_params.json"

DEFAULT_MAX_DURATION_SECONDS = 365 * 24 * 60 * 60
DEFAULT_SALT_BYTES = 32
MIN_SALT_BYTES = 16


@dataclass(frozen=True)
class ForesightConfig:
    """Validated engine parameters.

    administrator: initial process-wide administrator principal.
    max_duration_seconds: upper bound for event duration (inclusive).
    salt_bytes: size of the secret salt generated by submit_choice.
    event_log_path: optional JSONL file backing the notification log.
    """
    administrator: str
    max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS
    salt_bytes: int = DEFAULT_SALT_BYTES
    event_log_path: Optional[Path] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.administrator, str) or not self.administrator.strip():
            raise ValidationError("administrator must be a non-empty principal id")
        if (
            isinstance(self.max_duration_seconds, bool)
            or not isinstance(self.max_duration_seconds, int)
            or self.max_duration_seconds <= 0
        ):
            raise ValidationError(
                f"max_duration_seconds must be a positive integer, "
                f"got {self.max_duration_seconds!r}"
            )
        if (
            isinstance(self.salt_bytes, bool)
            or not isinstance(self.salt_bytes, int)
            or self.salt_bytes < MIN_SALT_BYTES
        ):
            raise ValidationError(
                f"salt_bytes must be an integer >= {MIN_SALT_BYTES}, got {self.salt_bytes!r}"
            )

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        administrator: Optional[str] = None,
    ) -> ForesightConfig:
        """Build a config from parsed JSON. An explicit administrator wins."""
        admin = administrator or data.get("administrator")
        if admin is None:
            raise ValidationError("No administrator configured")
        log_path = data.get("event_log_path")
        return cls(
            administrator=admin,
            max_duration_seconds=_int_param(
                data, "max_duration_seconds", DEFAULT_MAX_DURATION_SECONDS,
            ),
            salt_bytes=_int_param(data, "salt_bytes", DEFAULT_SALT_BYTES),
            event_log_path=Path(log_path) if log_path else None,
        )

    @classmethod
    def from_file(
        cls,
        path: Path,
        administrator: Optional[str] = None,
    ) -> ForesightConfig:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValidationError(f"{path}: expected a JSON object")
        return cls.from_dict(data, administrator=administrator)

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Path,
        administrator: Optional[str] = None,
    ) -> ForesightConfig:
        return cls.from_file(config_dir / PARAMS_FILENAME, administrator=administrator)


def _int_param(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer, got {value!r}")
    return value
