"""Tagesplan-Scheduler: Slots anlegen, ändern, generieren und als unterrichtet markieren."""

from .errors import (
    AdjacentAdjustmentFailure,
    OverlapConflict,
    PartialGenerationFailure,
    SchedulerError,
    SlotNotFoundError,
    SlotValidationError,
    UniqueNumberConflict,
)
from .generator import DayGenerator, add_minutes, build_day_slots
from .invariants import (
    PLACEHOLDER_PERIOD_NUMBER,
    find_overlaps,
    is_densely_numbered,
    order_slots,
    parking_base,
    renumber,
)
from .progress import ProgressLedger
from .service import AdjustmentOutcome, SlotMutationService, SlotUpdateResult
from .timetable import DayView, TimetableScheduler

__all__ = [
    "SchedulerError",
    "SlotValidationError",
    "OverlapConflict",
    "UniqueNumberConflict",
    "SlotNotFoundError",
    "AdjacentAdjustmentFailure",
    "PartialGenerationFailure",
    "DayGenerator",
    "add_minutes",
    "build_day_slots",
    "PLACEHOLDER_PERIOD_NUMBER",
    "find_overlaps",
    "is_densely_numbered",
    "parking_base",
    "order_slots",
    "renumber",
    "ProgressLedger",
    "AdjustmentOutcome",
    "SlotMutationService",
    "SlotUpdateResult",
    "DayView",
    "TimetableScheduler",
]
