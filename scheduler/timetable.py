"""Öffentliche Schnittstelle des Tagesplan-Schedulers.

``TimetableScheduler`` bündelt Slot-Änderungen, Tagesgenerierung und
Fortschritt. Jeder Aufruf bekommt den ``SlotScope`` explizit übergeben.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from config.schema import ProgressKeying, QuickGenerateSpec, SchedulerConfig
from models.progress import ProgressRecord
from models.scope import SlotScope
from models.slot import BreakSlot, PeriodSlot, SlotDraft, SlotPatch, SlotStatus, TimetableSlot
from models.syllabus import SyllabusCatalog
from scheduler.errors import SlotValidationError
from scheduler.generator import DayGenerator
from scheduler.progress import ProgressLedger
from scheduler.service import SlotMutationService, SlotUpdateResult
from store.base import SlotStore


@dataclass
class DayView:
    """Geordnete Slots eines Tages plus die als unterrichtet markierten IDs."""
    scope: SlotScope
    slots: list[TimetableSlot] = field(default_factory=list)
    taught_slot_ids: set[str] = field(default_factory=set)

    @property
    def period_count(self) -> int:
        return sum(1 for s in self.slots if isinstance(s, PeriodSlot))

    @property
    def break_count(self) -> int:
        return sum(1 for s in self.slots if isinstance(s, BreakSlot))

    def is_taught(self, slot_id: str) -> bool:
        return slot_id in self.taught_slot_ids


class TimetableScheduler:
    def __init__(
        self,
        store: SlotStore,
        catalog: Optional[SyllabusCatalog] = None,
        progress_keying: ProgressKeying = ProgressKeying.SLOT,
        plan_text_max_length: int = 500,
        actor: Optional[str] = None,
    ) -> None:
        self.store = store
        self.mutations = SlotMutationService(store, catalog, plan_text_max_length, actor)
        self.generator = DayGenerator(store, actor)
        self.ledger = ProgressLedger(store, progress_keying, actor)

    @classmethod
    def from_config(
        cls,
        config: SchedulerConfig,
        store: SlotStore,
        catalog: Optional[SyllabusCatalog] = None,
        actor: Optional[str] = None,
    ) -> "TimetableScheduler":
        return cls(
            store,
            catalog=catalog,
            progress_keying=config.progress.keying,
            plan_text_max_length=config.validation.plan_text_max_length,
            actor=actor,
        )

    # ─── Lesen ───

    def get_day(self, scope: SlotScope) -> DayView:
        """Aktueller Stand eines Tages, bei jedem Aufruf frisch aus dem Store."""
        return DayView(
            scope=scope,
            slots=self.store.list_slots(scope),
            taught_slot_ids=self.ledger.taught_slot_ids(scope),
        )

    def list_range(
        self, school_code: str, class_instance_id: str, date_from: date, date_to: date
    ) -> list[TimetableSlot]:
        """Slots einer Klasse über einen Zeitraum (z.B. eine Woche)."""
        if date_from > date_to:
            raise SlotValidationError("date_to", "Enddatum liegt vor dem Startdatum.")
        return self.store.list_slots_in_range(school_code, class_instance_id, date_from, date_to)

    # ─── Slots ───

    def create_slot(self, scope: SlotScope, draft: SlotDraft) -> TimetableSlot:
        return self.mutations.create_slot(scope, draft)

    def update_slot(self, scope: SlotScope, slot_id: str, patch: SlotPatch) -> SlotUpdateResult:
        return self.mutations.update_slot(scope, slot_id, patch)

    def delete_slot(self, scope: SlotScope, slot_id: str) -> None:
        self.mutations.delete_slot(scope, slot_id)

    def update_slot_status(self, scope: SlotScope, slot_id: str, status: SlotStatus) -> TimetableSlot:
        return self.mutations.update_slot_status(scope, slot_id, status)

    # ─── Ganze Tage ───

    def quick_generate(self, scope: SlotScope, spec: QuickGenerateSpec) -> list[TimetableSlot]:
        return self.generator.quick_generate(scope, spec)

    def copy_day(self, source: SlotScope, target_date: date, overwrite: bool = False) -> list[TimetableSlot]:
        return self.generator.copy_day(source, target_date, overwrite)

    # ─── Fortschritt ───

    def mark_taught(self, scope: SlotScope, slot_id: str) -> ProgressRecord:
        return self.ledger.mark_taught(scope, slot_id)

    def unmark_taught(self, scope: SlotScope, slot_id: str) -> int:
        return self.ledger.unmark_taught(scope, slot_id)

    def is_taught(self, scope: SlotScope, slot_id: str) -> bool:
        return self.ledger.is_taught(scope, slot_id)
