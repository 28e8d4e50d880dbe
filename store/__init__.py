"""Persistenzschicht für Tagesplan-Slots (In-Memory und JSON-Datei)."""

from .base import SlotStore
from .errors import (
    DuplicatePeriodNumber,
    InvalidRecord,
    OverlapRejected,
    PersistenceError,
    RecordNotFound,
    StoreError,
)
from .json_store import JsonSlotStore, StoreSnapshot
from .memory import InMemorySlotStore

__all__ = [
    "SlotStore",
    "StoreError",
    "OverlapRejected",
    "DuplicatePeriodNumber",
    "RecordNotFound",
    "InvalidRecord",
    "PersistenceError",
    "InMemorySlotStore",
    "JsonSlotStore",
    "StoreSnapshot",
]
