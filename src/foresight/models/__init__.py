"""Core data models for the prediction engine."""

from foresight.models.event import (
    EventSnapshot,
    EventState,
    PredictionEvent,
    PredictionStats,
    RoundInfo,
)
from foresight.models.commitment import (
    CommitContext,
    Commitment,
    CommitmentState,
    CommitmentStatus,
)

__all__ = [
    "EventSnapshot",
    "EventState",
    "PredictionEvent",
    "PredictionStats",
    "RoundInfo",
    "CommitContext",
    "Commitment",
    "CommitmentState",
    "CommitmentStatus",
]
