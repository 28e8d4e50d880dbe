"""Änderungen an einzelnen Slots: anlegen, bearbeiten, löschen, Status setzen.

Nach jeder Änderung wird die Partition neu nummeriert. Zeitänderungen
ziehen den unmittelbaren Nachbarn mit (siehe ``update_slot``).
"""

import logging
from dataclasses import dataclass, field
from datetime import time
from typing import Optional

from models.scope import SlotScope
from models.slot import (
    BreakSlot,
    PeriodSlot,
    SlotDraft,
    SlotPatch,
    SlotStatus,
    TimetableSlot,
)
from models.syllabus import SyllabusCatalog
from scheduler.errors import (
    AdjacentAdjustmentFailure,
    OverlapConflict,
    SchedulerError,
    SlotNotFoundError,
    SlotValidationError,
    UniqueNumberConflict,
)
from scheduler.invariants import parking_base, renumber
from store.base import SlotStore
from store.errors import (
    DuplicatePeriodNumber,
    InvalidRecord,
    OverlapRejected,
    RecordNotFound,
    StoreError,
)

logger = logging.getLogger(__name__)

# (von, nach). Andere Übergänge werden abgelehnt, gleicher Status ist ein No-op.
ALLOWED_STATUS_TRANSITIONS = {
    (SlotStatus.PLANNED, SlotStatus.DONE),
    (SlotStatus.PLANNED, SlotStatus.CANCELLED),
    (SlotStatus.DONE, SlotStatus.PLANNED),
}

PERIOD_ONLY_FIELDS = (
    "subject_id",
    "teacher_id",
    "syllabus_chapter_id",
    "syllabus_topic_id",
    "plan_text",
)

_TRANSLATED_STORE_ERRORS = (OverlapRejected, DuplicatePeriodNumber, RecordNotFound, InvalidRecord)


def _domain_error(err: StoreError, start: time, end: time) -> SchedulerError:
    """Übersetzt einen Store-Fehler in den passenden Fachfehler."""
    if isinstance(err, OverlapRejected):
        other = err.conflicting
        return OverlapConflict(start, end, other.start_time, other.end_time, other.id)
    if isinstance(err, DuplicatePeriodNumber):
        return UniqueNumberConflict(err.period_number)
    if isinstance(err, RecordNotFound):
        return SlotNotFoundError(err.record_id)
    return SlotValidationError("slot", str(err))


# ─── Ergebnisse ───

@dataclass
class AdjustmentOutcome:
    """Ergebnis einer einzelnen Nachbar-Anpassung."""
    neighbor_id: str
    side: str                       # "previous" / "next"
    slot: Optional[TimetableSlot] = None
    failure: Optional[AdjacentAdjustmentFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class SlotUpdateResult:
    """Bearbeiteter Slot plus Protokoll der Nachbar-Anpassungen.

    Fehlgeschlagene Anpassungen stehen in ``warnings``; die Änderung selbst
    gilt trotzdem als erfolgreich.
    """
    slot: TimetableSlot
    adjusted_neighbor_ids: list[str] = field(default_factory=list)
    warnings: list[AdjacentAdjustmentFailure] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


# ─── Service ───

class SlotMutationService:
    """Anlegen, Bearbeiten und Löschen einzelner Slots einer Partition.

    Überschneidungen werden nicht vorab geprüft: der Store weist sie atomar
    ab und der Service meldet sie als ``OverlapConflict``.
    """

    def __init__(
        self,
        store: SlotStore,
        catalog: Optional[SyllabusCatalog] = None,
        plan_text_max_length: int = 500,
        actor: Optional[str] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.plan_text_max_length = plan_text_max_length
        self.actor = actor

    # ─── Anlegen ───

    def create_slot(self, scope: SlotScope, draft: SlotDraft) -> TimetableSlot:
        """Legt einen Slot an und gibt ihn mit endgültiger Stundennummer zurück.

        Der Slot wird mit einer freien Nummer oberhalb von
        ``PLACEHOLDER_PERIOD_NUMBER`` eingefügt und im selben Schritt neu
        nummeriert.

        Raises:
            SlotValidationError: Feldkombination passt nicht zum slot_type.
            OverlapConflict: Zeitraum schneidet einen bestehenden Slot.
        """
        self._validate_draft(draft)
        slot = self._build_slot(scope, draft, parking_base(self.store.list_slots(scope)) + 1)

        try:
            with self.store.transaction():
                created = self.store.insert_slot(slot)
                renumber(self.store, scope)
        except _TRANSLATED_STORE_ERRORS as e:
            raise _domain_error(e, draft.start_time, draft.end_time) from e

        result = self.store.get_slot(scope, created.id)
        logger.info(
            f"{scope}: {result.slot_type} {result.time_label} angelegt "
            f"(Stunde {result.period_number})"
        )
        return result

    def _build_slot(self, scope: SlotScope, draft: SlotDraft, period_number: int) -> TimetableSlot:
        common = dict(
            school_code=scope.school_code,
            class_instance_id=scope.class_instance_id,
            class_date=scope.class_date,
            period_number=period_number,
            start_time=draft.start_time,
            end_time=draft.end_time,
            status=draft.status,
            created_by=self.actor,
        )
        if draft.slot_type == "break":
            return BreakSlot(name=draft.name, **common)
        return PeriodSlot(
            subject_id=draft.subject_id,
            teacher_id=draft.teacher_id,
            syllabus_chapter_id=draft.syllabus_chapter_id,
            syllabus_topic_id=draft.syllabus_topic_id,
            plan_text=draft.plan_text,
            **common,
        )

    # ─── Bearbeiten ───

    def update_slot(self, scope: SlotScope, slot_id: str, patch: SlotPatch) -> SlotUpdateResult:
        """Übernimmt eine Teiländerung und passt ggf. die Nachbarn an.

        Hat sich end_time geändert, beginnt der nächste Slot zur neuen
        end_time; hat sich start_time geändert, endet der vorherige Slot zur
        neuen start_time. Nur der unmittelbare Nachbar wird angepasst.
        Schlägt eine Anpassung fehl, landet sie als Warnung im Ergebnis.
        """
        current = self._require_slot(scope, slot_id)
        changes = patch.changes()
        target_type = changes.get("slot_type", current.slot_type)
        merged = {**current.model_dump(), **changes}
        self._validate_update(target_type, merged, changes)

        try:
            updated = self.store.update_slot(scope, slot_id, changes)
        except _TRANSLATED_STORE_ERRORS as e:
            raise _domain_error(e, merged["start_time"], merged["end_time"]) from e

        result = SlotUpdateResult(slot=updated)
        start_changed = updated.start_time != current.start_time
        end_changed = updated.end_time != current.end_time
        if start_changed or end_changed:
            ordered = self.store.list_slots(scope)
            idx = next(i for i, s in enumerate(ordered) if s.id == slot_id)
            steps = []
            if end_changed and idx + 1 < len(ordered):
                steps.append((ordered[idx + 1], "next", {"start_time": updated.end_time}))
            if start_changed and idx > 0:
                steps.append((ordered[idx - 1], "previous", {"end_time": updated.start_time}))
            for neighbor, side, neighbor_changes in steps:
                outcome = self._adjust_neighbor(scope, neighbor, side, neighbor_changes)
                if outcome.ok:
                    if outcome.slot is not None:
                        result.adjusted_neighbor_ids.append(neighbor.id)
                else:
                    result.warnings.append(outcome.failure)

        try:
            renumber(self.store, scope)
        except _TRANSLATED_STORE_ERRORS as e:
            raise _domain_error(e, updated.start_time, updated.end_time) from e

        result.slot = self.store.get_slot(scope, slot_id)
        logger.info(
            f"{scope}: Slot {slot_id} geändert ({', '.join(changes) or 'keine Felder'}), "
            f"{len(result.adjusted_neighbor_ids)} Nachbar(n) angepasst"
        )
        return result

    def _adjust_neighbor(
        self, scope: SlotScope, neighbor: TimetableSlot, side: str, changes: dict
    ) -> AdjustmentOutcome:
        """Einzelner Nachbar-Schritt. Wirft nie, sondern meldet das Ergebnis."""
        if all(getattr(neighbor, k) == v for k, v in changes.items()):
            return AdjustmentOutcome(neighbor.id, side)
        try:
            slot = self.store.update_slot(scope, neighbor.id, changes)
        except StoreError as e:
            failure = AdjacentAdjustmentFailure(neighbor.id, side, str(e))
            logger.warning(f"{scope}: {failure} Grund: {e}")
            return AdjustmentOutcome(neighbor.id, side, failure=failure)
        logger.debug(f"{scope}: Nachbar {neighbor.id} ({side}) → {slot.time_label}")
        return AdjustmentOutcome(neighbor.id, side, slot=slot)

    # ─── Löschen ───

    def delete_slot(self, scope: SlotScope, slot_id: str) -> None:
        """Löscht den Slot und nummeriert neu. Nachbarzeiten bleiben unverändert."""
        current = self._require_slot(scope, slot_id)
        try:
            with self.store.transaction():
                self.store.delete_slot(scope, slot_id)
                renumber(self.store, scope)
        except _TRANSLATED_STORE_ERRORS as e:
            raise _domain_error(e, current.start_time, current.end_time) from e
        logger.info(f"{scope}: Slot {slot_id} ({current.time_label}) gelöscht")

    # ─── Status ───

    def update_slot_status(self, scope: SlotScope, slot_id: str, status: SlotStatus) -> TimetableSlot:
        """Setzt den Status. Erlaubt: planned → done/cancelled, done → planned."""
        current = self._require_slot(scope, slot_id)
        status = SlotStatus(status)
        if current.status == status:
            return current
        if (current.status, status) not in ALLOWED_STATUS_TRANSITIONS:
            raise SlotValidationError(
                "status",
                f"Übergang {current.status.value} → {status.value} ist nicht erlaubt.",
            )
        try:
            updated = self.store.update_slot(scope, slot_id, {"status": status})
        except _TRANSLATED_STORE_ERRORS as e:
            raise _domain_error(e, current.start_time, current.end_time) from e
        logger.info(f"{scope}: Slot {slot_id} Status {current.status.value} → {status.value}")
        return updated

    # ─── Prüfungen ───

    def _require_slot(self, scope: SlotScope, slot_id: str) -> TimetableSlot:
        slot = self.store.get_slot(scope, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id)
        return slot

    def _validate_draft(self, draft: SlotDraft) -> None:
        _check_time_range(draft.start_time, draft.end_time)
        if draft.slot_type == "break":
            _check_break_name(draft.name)
            for f in PERIOD_ONLY_FIELDS:
                if getattr(draft, f) is not None:
                    raise SlotValidationError(f, "Nur für Unterrichtsstunden zulässig.")
            return

        if draft.name is not None:
            raise SlotValidationError("name", "Nur für Pausen zulässig.")
        if not draft.subject_id:
            raise SlotValidationError("subject_id", "Unterrichtsstunden benötigen ein Fach.")
        if not draft.teacher_id:
            raise SlotValidationError("teacher_id", "Unterrichtsstunden benötigen eine Lehrkraft.")
        self._validate_period_content(
            draft.subject_id, draft.syllabus_chapter_id, draft.syllabus_topic_id, draft.plan_text
        )

    def _validate_update(self, target_type: str, merged: dict, changes: dict) -> None:
        """Prüft den Slot, wie er nach der Änderung aussähe.

        Fach und Lehrkraft sind hier nicht Pflicht: generierte Stunden werden
        schrittweise befüllt.
        """
        _check_time_range(merged["start_time"], merged["end_time"])
        if target_type == "break":
            _check_break_name(merged.get("name"))
            for f in PERIOD_ONLY_FIELDS:
                if changes.get(f) is not None:
                    raise SlotValidationError(f, "Nur für Unterrichtsstunden zulässig.")
            return

        if changes.get("name") is not None:
            raise SlotValidationError("name", "Nur für Pausen zulässig.")
        self._validate_period_content(
            merged.get("subject_id"),
            merged.get("syllabus_chapter_id"),
            merged.get("syllabus_topic_id"),
            merged.get("plan_text"),
        )

    def _validate_period_content(
        self,
        subject_id: Optional[str],
        chapter_id: Optional[str],
        topic_id: Optional[str],
        plan_text: Optional[str],
    ) -> None:
        if plan_text is not None and len(plan_text) > self.plan_text_max_length:
            raise SlotValidationError(
                "plan_text", f"Höchstens {self.plan_text_max_length} Zeichen erlaubt."
            )
        if topic_id and not chapter_id:
            raise SlotValidationError("syllabus_topic_id", "Ein Thema setzt ein Kapitel voraus.")
        if self.catalog is None:
            return

        if chapter_id:
            chapter_subject = self.catalog.chapter_subject(chapter_id)
            if chapter_subject is None:
                raise SlotValidationError("syllabus_chapter_id", f"Unbekanntes Kapitel: {chapter_id}")
            if chapter_subject != subject_id:
                raise SlotValidationError(
                    "syllabus_chapter_id",
                    f"Kapitel {chapter_id} gehört nicht zum Fach {subject_id}.",
                )
        if topic_id:
            topic_chapter = self.catalog.topic_chapter(topic_id)
            if topic_chapter is None:
                raise SlotValidationError("syllabus_topic_id", f"Unbekanntes Thema: {topic_id}")
            if topic_chapter != chapter_id:
                raise SlotValidationError(
                    "syllabus_topic_id",
                    f"Thema {topic_id} gehört nicht zum Kapitel {chapter_id}.",
                )


def _check_time_range(start: time, end: time) -> None:
    if start >= end:
        raise SlotValidationError(
            "end_time", f"Ende ({end:%H:%M}) muss nach Beginn ({start:%H:%M}) liegen."
        )


def _check_break_name(name: Optional[str]) -> None:
    if not name or not name.strip():
        raise SlotValidationError("name", "Pausen benötigen eine Bezeichnung.")
