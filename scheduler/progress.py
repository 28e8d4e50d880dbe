"""Brücke zum Stoff-Fortschritt: Stunden als "unterrichtet" markieren."""

import logging
from typing import Optional

from config.schema import ProgressKeying
from models.progress import ProgressMatch, ProgressRecord
from models.scope import SlotScope
from models.slot import BreakSlot, PeriodSlot
from scheduler.errors import SlotNotFoundError, SlotValidationError
from store.base import SlotStore

logger = logging.getLogger(__name__)


class ProgressLedger:
    """Legt Fortschrittseinträge an und entfernt sie wieder.

    Einträge leben unabhängig vom Slot. Wie ``unmark_taught`` den Eintrag
    findet, bestimmt ``keying``:

    - ``SLOT``: über die Slot-ID, auch nach späteren Änderungen am Slot.
    - ``CONTENT``: über Schule/Fach/Lehrkraft/Kapitel/Thema des *aktuellen*
      Slots, ohne Klasse und Datum. Wurde der Slot seit dem Markieren
      geändert, bleibt der alte Eintrag stehen.
    """

    def __init__(
        self,
        store: SlotStore,
        keying: ProgressKeying = ProgressKeying.SLOT,
        actor: Optional[str] = None,
    ) -> None:
        self.store = store
        self.keying = ProgressKeying(keying)
        self.actor = actor

    def _period(self, scope: SlotScope, slot_id: str) -> PeriodSlot:
        slot = self.store.get_slot(scope, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id)
        if isinstance(slot, BreakSlot):
            raise SlotValidationError("slot_type", "Nur Unterrichtsstunden können unterrichtet werden.")
        return slot

    def mark_taught(self, scope: SlotScope, slot_id: str) -> ProgressRecord:
        """Legt einen Eintrag mit dem aktuellen Inhalt der Stunde an.

        Keine Prüfung auf bestehende Einträge: zweimal markieren ergibt
        zwei Einträge.
        """
        slot = self._period(scope, slot_id)
        record = self.store.insert_progress_record(ProgressRecord(
            school_code=slot.school_code,
            class_instance_id=slot.class_instance_id,
            class_date=slot.class_date,
            subject_id=slot.subject_id,
            teacher_id=slot.teacher_id,
            syllabus_chapter_id=slot.syllabus_chapter_id,
            syllabus_topic_id=slot.syllabus_topic_id,
            timetable_slot_id=slot.id,
            created_by=self.actor,
        ))
        logger.info(f"{scope}: Stunde {slot.period_number} als unterrichtet markiert")
        return record

    def unmark_taught(self, scope: SlotScope, slot_id: str) -> int:
        """Entfernt die Einträge der Stunde. Gibt die Anzahl gelöschter Einträge zurück."""
        slot = self._period(scope, slot_id)
        if self.keying == ProgressKeying.SLOT:
            match = ProgressMatch(timetable_slot_id=slot.id)
        else:
            match = ProgressMatch(
                school_code=slot.school_code,
                subject_id=slot.subject_id,
                teacher_id=slot.teacher_id,
                syllabus_chapter_id=slot.syllabus_chapter_id,
                syllabus_topic_id=slot.syllabus_topic_id,
            )

        removed = self.store.delete_progress_records(match)
        if removed == 0:
            logger.warning(
                f"{scope}: Kein Fortschrittseintrag für Stunde {slot.period_number} "
                f"gefunden (keying={self.keying.value})"
            )
        else:
            logger.info(f"{scope}: {removed} Fortschrittseintrag/-einträge entfernt")
        return removed

    def taught_slot_ids(self, scope: SlotScope) -> set[str]:
        return self.store.list_progress_slot_ids(scope)

    def is_taught(self, scope: SlotScope, slot_id: str) -> bool:
        return slot_id in self.store.list_progress_slot_ids(scope)
