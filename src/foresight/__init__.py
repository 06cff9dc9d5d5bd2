"""Foresight — private binary predictions with commit/reveal verification."""

from foresight.config import ForesightConfig
from foresight.errors import ErrorKind, ForesightError
from foresight.service import ForesightService, ServiceResult

__version__ = "0.1.0"

__all__ = [
    "ErrorKind",
    "ForesightConfig",
    "ForesightError",
    "ForesightService",
    "ServiceResult",
]
