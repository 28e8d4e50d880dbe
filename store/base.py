"""Vertrag der Slot-Persistenz.

Jeder Aufruf ist durch einen ``SlotScope`` (Schule, Klasse, Datum) begrenzt.
Der Store prüft Überschneidungen und eindeutige Stundennummern atomar pro
Schreibvorgang; der Scheduler selbst prüft nicht vorab.
"""

from datetime import date
from typing import ContextManager, Protocol

from models.progress import ProgressMatch, ProgressRecord
from models.scope import SlotScope
from models.slot import TimetableSlot


class SlotStore(Protocol):
    """Repository-Vertrag für Slots und Fortschrittseinträge."""

    # True wenn transaction() bei Fehlern tatsächlich zurückrollt.
    supports_transactions: bool

    def list_slots(self, scope: SlotScope) -> list[TimetableSlot]:
        """Alle Slots der Partition, aufsteigend nach start_time."""

    def get_slot(self, scope: SlotScope, slot_id: str) -> TimetableSlot | None:
        """Einzelner Slot oder None."""

    def list_slots_in_range(
        self, school_code: str, class_instance_id: str, date_from: date, date_to: date
    ) -> list[TimetableSlot]:
        """Slots einer Klasse über mehrere Tage, nach Datum und Stundennummer."""

    def insert_slot(self, slot: TimetableSlot) -> TimetableSlot:
        """Legt einen Slot an und vergibt die id.

        Raises:
            OverlapRejected, DuplicatePeriodNumber
        """

    def insert_many_slots(self, slots: list[TimetableSlot]) -> list[TimetableSlot]:
        """Legt mehrere Slots an. Nicht atomar über den ganzen Stapel."""

    def update_slot(self, scope: SlotScope, slot_id: str, changes: dict) -> TimetableSlot:
        """Übernimmt die Änderungen (ggf. mit Wechsel von slot_type).

        Raises:
            RecordNotFound, OverlapRejected, DuplicatePeriodNumber, InvalidRecord
        """

    def delete_slot(self, scope: SlotScope, slot_id: str) -> None:
        """Raises: RecordNotFound"""

    def delete_all_slots(self, scope: SlotScope) -> int:
        """Löscht alle Slots der Partition, gibt die Anzahl zurück."""

    def insert_progress_record(self, record: ProgressRecord) -> ProgressRecord:
        """Legt einen Fortschrittseintrag an."""

    def delete_progress_records(self, match: ProgressMatch) -> int:
        """Löscht alle passenden Einträge, gibt die Anzahl zurück."""

    def list_progress_records(self, scope: SlotScope) -> list[ProgressRecord]:
        """Fortschrittseinträge einer Klasse an einem Tag."""

    def list_progress_slot_ids(self, scope: SlotScope) -> set[str]:
        """IDs der Slots, die aktuell als unterrichtet markiert sind."""

    def transaction(self) -> ContextManager[None]:
        """Klammert mehrere Schreibvorgänge; rollt bei Ausnahme zurück,
        sofern ``supports_transactions`` True ist."""
