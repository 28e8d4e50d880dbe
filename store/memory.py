"""In-Memory-Store mit denselben Constraints wie die Datenbank.

Prüft pro Schreibvorgang:
  - keine Überschneidung von [start_time, end_time) innerhalb der Partition
  - eindeutige period_number innerhalb der Partition
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, Optional

from pydantic import ValidationError

from models.progress import ProgressMatch, ProgressRecord
from models.scope import SlotScope
from models.slot import TimetableSlot, parse_slot
from store.errors import (
    DuplicatePeriodNumber,
    InvalidRecord,
    OverlapRejected,
    RecordNotFound,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemorySlotStore:
    """Slot-Store im Arbeitsspeicher.

    Einträge werden nie verändert, sondern bei jeder Änderung ersetzt
    (model_copy). Jeder Schreibvorgang und jede transaction() sichert den
    Zustand und stellt ihn bei einer Ausnahme wieder her, auch wenn erst das
    Persistieren scheitert.
    """

    supports_transactions = True

    def __init__(self) -> None:
        self._slots: dict[str, TimetableSlot] = {}
        self._progress: dict[str, ProgressRecord] = {}
        self._tx_depth = 0

    # ─── Slots lesen ───

    def _partition(self, scope: SlotScope) -> list[TimetableSlot]:
        return [s for s in self._slots.values() if s.scope == scope]

    def list_slots(self, scope: SlotScope) -> list[TimetableSlot]:
        slots = sorted(self._partition(scope), key=lambda s: (s.start_time, s.period_number))
        return [s.model_copy() for s in slots]

    def get_slot(self, scope: SlotScope, slot_id: str) -> Optional[TimetableSlot]:
        slot = self._slots.get(slot_id)
        if slot is None or slot.scope != scope:
            return None
        return slot.model_copy()

    def list_slots_in_range(
        self, school_code: str, class_instance_id: str, date_from: date, date_to: date
    ) -> list[TimetableSlot]:
        slots = [
            s for s in self._slots.values()
            if s.school_code == school_code
            and s.class_instance_id == class_instance_id
            and date_from <= s.class_date <= date_to
        ]
        slots.sort(key=lambda s: (s.class_date, s.period_number))
        return [s.model_copy() for s in slots]

    # ─── Slots schreiben ───

    def _check_constraints(self, candidate: TimetableSlot) -> None:
        others = [s for s in self._partition(candidate.scope) if s.id != candidate.id]
        for other in others:
            if candidate.overlaps(other):
                raise OverlapRejected(other)
        if any(o.period_number == candidate.period_number for o in others):
            raise DuplicatePeriodNumber(candidate.period_number)

    def insert_slot(self, slot: TimetableSlot) -> TimetableSlot:
        now = _now()
        stored = slot.model_copy(update={
            "id": slot.id or _new_id(),
            "created_at": slot.created_at or now,
            "updated_at": now,
        })
        self._check_constraints(stored)
        with self._atomic():
            self._slots[stored.id] = stored
        return stored.model_copy()

    def insert_many_slots(self, slots: list[TimetableSlot]) -> list[TimetableSlot]:
        return [self.insert_slot(s) for s in slots]

    def update_slot(self, scope: SlotScope, slot_id: str, changes: dict) -> TimetableSlot:
        current = self._slots.get(slot_id)
        if current is None or current.scope != scope:
            raise RecordNotFound(slot_id)
        data = current.model_dump()
        data.update(changes)
        data["id"] = current.id
        data["updated_at"] = _now()
        try:
            candidate = parse_slot(data)
        except ValidationError as e:
            raise InvalidRecord(str(e)) from e
        self._check_constraints(candidate)
        with self._atomic():
            self._slots[slot_id] = candidate
        return candidate.model_copy()

    def delete_slot(self, scope: SlotScope, slot_id: str) -> None:
        current = self._slots.get(slot_id)
        if current is None or current.scope != scope:
            raise RecordNotFound(slot_id)
        with self._atomic():
            del self._slots[slot_id]

    def delete_all_slots(self, scope: SlotScope) -> int:
        ids = [s.id for s in self._partition(scope)]
        with self._atomic():
            for slot_id in ids:
                del self._slots[slot_id]
        return len(ids)

    # ─── Fortschritt ───

    def insert_progress_record(self, record: ProgressRecord) -> ProgressRecord:
        stored = record.model_copy(update={
            "id": record.id or _new_id(),
            "created_at": record.created_at or _now(),
        })
        with self._atomic():
            self._progress[stored.id] = stored
        return stored.model_copy()

    def delete_progress_records(self, match: ProgressMatch) -> int:
        ids = [rid for rid, r in self._progress.items() if match.matches(r)]
        with self._atomic():
            for rid in ids:
                del self._progress[rid]
        return len(ids)

    def list_progress_records(self, scope: SlotScope) -> list[ProgressRecord]:
        return [
            r.model_copy() for r in self._progress.values()
            if r.school_code == scope.school_code
            and r.class_instance_id == scope.class_instance_id
            and r.class_date == scope.class_date
        ]

    def list_progress_slot_ids(self, scope: SlotScope) -> set[str]:
        return {
            r.timetable_slot_id for r in self.list_progress_records(scope)
            if r.timetable_slot_id
        }

    # ─── Transaktionen ───

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._atomic():
            yield

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """Sichert den Zustand, persistiert auf äußerster Ebene und stellt bei
        einer Ausnahme (auch beim Persistieren) den alten Zustand wieder her."""
        slots_before = dict(self._slots)
        progress_before = dict(self._progress)
        self._tx_depth += 1
        try:
            try:
                yield
            finally:
                self._tx_depth -= 1
            if self._tx_depth == 0:
                self._persist()
        except BaseException:
            self._slots = slots_before
            self._progress = progress_before
            logger.debug("Änderung zurückgerollt")
            raise

    def _persist(self) -> None:
        pass
