"""Datenmodell für Tagesplan-Slots (Pydantic v2).

Ein Slot ist entweder eine Unterrichtsstunde (``PeriodSlot``) oder eine Pause
(``BreakSlot``). Beide Varianten werden über ``slot_type`` unterschieden und
tragen nur die für sie relevanten Felder.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from models.scope import SlotScope

SlotTypeName = Literal["period", "break"]


class SlotStatus(str, Enum):
    PLANNED = "planned"
    DONE = "done"
    CANCELLED = "cancelled"


def ranges_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """True wenn sich [a_start, a_end) und [b_start, b_end) schneiden.

    Berührende Grenzen (Ende = Beginn des nächsten) gelten nicht als Überschneidung.
    """
    return a_start < b_end and b_start < a_end


class SlotBase(BaseModel):
    """Gemeinsame Felder beider Slot-Varianten."""

    id: Optional[str] = None           # vom Store vergeben
    school_code: str
    class_instance_id: str
    class_date: date
    period_number: int = Field(ge=1)   # dicht 1..N, nach start_time sortiert
    start_time: time
    end_time: time
    status: SlotStatus = SlotStatus.PLANNED
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError(
                f"start_time ({self.start_time:%H:%M}) muss vor "
                f"end_time ({self.end_time:%H:%M}) liegen."
            )
        return self

    @property
    def scope(self) -> SlotScope:
        return SlotScope(self.school_code, self.class_instance_id, self.class_date)

    @property
    def time_label(self) -> str:
        """Zeitspanne als "HH:MM–HH:MM"."""
        return f"{self.start_time:%H:%M}–{self.end_time:%H:%M}"

    @property
    def duration_minutes(self) -> int:
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start

    def overlaps(self, other: "SlotBase") -> bool:
        return ranges_overlap(self.start_time, self.end_time,
                              other.start_time, other.end_time)


class PeriodSlot(SlotBase):
    """Unterrichtsstunde.

    Fach und Lehrkraft dürfen leer sein, solange die Stunde nur als Gerüst
    aus der Schnellgenerierung stammt.
    """

    slot_type: Literal["period"] = "period"
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    syllabus_chapter_id: Optional[str] = None
    syllabus_topic_id: Optional[str] = None
    plan_text: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        """True wenn Fach und Lehrkraft gesetzt sind."""
        return bool(self.subject_id and self.teacher_id)


class BreakSlot(SlotBase):
    """Pause mit Bezeichnung (z.B. "Mittagspause")."""

    slot_type: Literal["break"] = "break"
    name: str

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Pausen benötigen eine Bezeichnung.")
        return v


TimetableSlot = Annotated[Union[PeriodSlot, BreakSlot], Field(discriminator="slot_type")]

_slot_adapter: TypeAdapter = TypeAdapter(TimetableSlot)


def parse_slot(data: dict) -> Union[PeriodSlot, BreakSlot]:
    """Validiert ein Dict als PeriodSlot oder BreakSlot (anhand slot_type)."""
    return _slot_adapter.validate_python(data)


# ─── Eingaben ─────────────────────────────────────────────────────────────────

class SlotDraft(BaseModel):
    """Eingabe für das Anlegen eines Slots.

    Enthält alle Slot-Felder außer id und period_number. Die Kombination der
    Felder wird erst vom Scheduler geprüft, damit Fehler mit Feldnamen
    gemeldet werden können.
    """

    slot_type: SlotTypeName = "period"
    start_time: time
    end_time: time
    name: Optional[str] = None
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    syllabus_chapter_id: Optional[str] = None
    syllabus_topic_id: Optional[str] = None
    plan_text: Optional[str] = None
    status: SlotStatus = SlotStatus.PLANNED


class SlotPatch(BaseModel):
    """Teiländerung eines Slots. Nur explizit gesetzte Felder werden übernommen."""

    slot_type: Optional[SlotTypeName] = None
    name: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    subject_id: Optional[str] = None
    teacher_id: Optional[str] = None
    syllabus_chapter_id: Optional[str] = None
    syllabus_topic_id: Optional[str] = None
    plan_text: Optional[str] = None

    @model_validator(mode="after")
    def _no_null_for_required(self):
        for field in ("slot_type", "start_time", "end_time"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} kann nicht geleert werden.")
        return self

    def changes(self) -> dict:
        """Nur die explizit gesetzten Felder."""
        return self.model_dump(exclude_unset=True)

    @property
    def touches_times(self) -> bool:
        return bool({"start_time", "end_time"} & self.model_fields_set)
