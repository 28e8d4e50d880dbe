"""Datenmodell für den Stoff-Fortschritt ("unterrichtet"-Einträge, Pydantic v2)."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class ProgressRecord(BaseModel):
    """Ein "wurde unterrichtet"-Eintrag.

    Unabhängig von der Lebensdauer des Slots: der Eintrag bleibt bestehen,
    auch wenn der Slot später geändert oder gelöscht wird. Wird nie
    nachträglich geändert.
    """

    id: Optional[str] = None
    school_code: str
    class_instance_id: str
    class_date: date
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    syllabus_chapter_id: Optional[str] = None
    syllabus_topic_id: Optional[str] = None
    timetable_slot_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class ProgressMatch(BaseModel):
    """Filter zum Löschen von ProgressRecords.

    Nur explizit gesetzte Felder werden verglichen; ein gesetztes ``None``
    passt nur auf Einträge, deren Feld ebenfalls leer ist.
    """

    school_code: Optional[str] = None
    class_instance_id: Optional[str] = None
    class_date: Optional[date] = None
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    syllabus_chapter_id: Optional[str] = None
    syllabus_topic_id: Optional[str] = None
    timetable_slot_id: Optional[str] = None

    def matches(self, record: ProgressRecord) -> bool:
        criteria = self.model_dump(exclude_unset=True)
        return all(getattr(record, k) == v for k, v in criteria.items())
