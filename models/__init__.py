from models.scope import SlotScope
from models.slot import (
    BreakSlot,
    PeriodSlot,
    SlotDraft,
    SlotPatch,
    SlotStatus,
    TimetableSlot,
    parse_slot,
    ranges_overlap,
)
from models.progress import ProgressMatch, ProgressRecord
from models.syllabus import SyllabusCatalog, SyllabusChapter, SyllabusTopic

__all__ = [
    "SlotScope",
    "BreakSlot",
    "PeriodSlot",
    "SlotDraft",
    "SlotPatch",
    "SlotStatus",
    "TimetableSlot",
    "parse_slot",
    "ranges_overlap",
    "ProgressMatch",
    "ProgressRecord",
    "SyllabusCatalog",
    "SyllabusChapter",
    "SyllabusTopic",
]
