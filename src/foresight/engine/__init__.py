"""Prediction engine — store, lifecycle, reveal, authorization, queries."""

from foresight.engine.authorization import AccessControl
from foresight.engine.lifecycle import LifecycleManager
from foresight.engine.queries import QueryLayer
from foresight.engine.reveal import RevealEngine
from foresight.engine.store import EventStore

__all__ = [
    "AccessControl",
    "EventStore",
    "LifecycleManager",
    "QueryLayer",
    "RevealEngine",
]
