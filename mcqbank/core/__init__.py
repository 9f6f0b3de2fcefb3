"""
Core building blocks shared by the quiz and study packages.
"""

from .events import BankUpdated, EventChannel
from .kv_store import (
    FaultTolerantStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    guarded,
)
from .shuffle import Mulberry32, new_seed, permute

__all__ = [
    "BankUpdated",
    "EventChannel",
    "FaultTolerantStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "guarded",
    "Mulberry32",
    "new_seed",
    "permute",
]
