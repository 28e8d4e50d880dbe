"""Tests für Invarianten und Slot-Änderungen (anlegen, bearbeiten, löschen, Status)."""

from datetime import date, time

import pytest

from models.scope import SlotScope
from models.slot import BreakSlot, PeriodSlot, SlotDraft, SlotPatch, SlotStatus
from models.syllabus import SyllabusCatalog
from scheduler import (
    PLACEHOLDER_PERIOD_NUMBER,
    OverlapConflict,
    SlotNotFoundError,
    SlotValidationError,
    TimetableScheduler,
    find_overlaps,
    is_densely_numbered,
    renumber,
)
from store import InMemorySlotStore, PersistenceError


SCOPE = SlotScope("MUSTER", "5a", date(2026, 10, 19))


def _t(value: str) -> time:
    return time.fromisoformat(value)


def _lesson(start: str, end: str, subject: str = "M", teacher: str = "MUE", **kw) -> SlotDraft:
    return SlotDraft(start_time=_t(start), end_time=_t(end),
                     subject_id=subject, teacher_id=teacher, **kw)


def _pause(start: str, end: str, name: str = "Pause") -> SlotDraft:
    return SlotDraft(slot_type="break", start_time=_t(start), end_time=_t(end), name=name)


def _numbers_in_time_order(scheduler: TimetableScheduler) -> list[int]:
    return [s.period_number for s in scheduler.get_day(SCOPE).slots]


class _FailingUpdateStore(InMemorySlotStore):
    """Store, dessen update_slot für ausgewählte IDs scheitert."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_ids: set[str] = set()

    def update_slot(self, scope, slot_id, changes):
        if slot_id in self.fail_ids:
            raise PersistenceError("Schreibfehler")
        return super().update_slot(scope, slot_id, changes)


@pytest.fixture
def store() -> InMemorySlotStore:
    return InMemorySlotStore()


@pytest.fixture
def scheduler(store) -> TimetableScheduler:
    return TimetableScheduler(store, actor="tester")


@pytest.fixture
def abc(scheduler):
    """Drei aufeinanderfolgende Stunden A(08:00-08:45) B(08:45-09:30) C(09:30-10:15)."""
    a = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
    b = scheduler.create_slot(SCOPE, _lesson("08:45", "09:30", subject="D"))
    c = scheduler.create_slot(SCOPE, _lesson("09:30", "10:15", subject="E"))
    return a, b, c


# ─── INVARIANTEN ──────────────────────────────────────────────────────────────

class TestRenumber:
    def test_empty_partition_noop(self, store):
        assert renumber(store, SCOPE) == 0

    def test_only_changed_slots_written(self, store):
        """Nur Slots mit falscher Nummer werden angefasst."""
        scheduler = TimetableScheduler(store)
        a, b, c = (scheduler.create_slot(SCOPE, _lesson(s, e)) for s, e in
                   (("08:00", "08:45"), ("09:00", "09:45"), ("10:00", "10:45")))
        store.update_slot(SCOPE, b.id, {"period_number": 7})
        store.update_slot(SCOPE, c.id, {"period_number": 5})
        before_a = store.get_slot(SCOPE, a.id).updated_at

        assert renumber(store, SCOPE) == 2
        assert _numbers_in_time_order(scheduler) == [1, 2, 3]
        assert store.get_slot(SCOPE, a.id).updated_at == before_a
        assert renumber(store, SCOPE) == 0

    def test_swapped_numbers(self, store):
        """Vertauschte Nummern lassen sich trotz Eindeutigkeit korrigieren."""
        scheduler = TimetableScheduler(store)
        a = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        b = scheduler.create_slot(SCOPE, _lesson("09:00", "09:45"))
        store.update_slot(SCOPE, a.id, {"period_number": 3})
        store.update_slot(SCOPE, b.id, {"period_number": 1})
        store.update_slot(SCOPE, a.id, {"period_number": 2})

        renumber(store, SCOPE)
        assert store.get_slot(SCOPE, a.id).period_number == 1
        assert store.get_slot(SCOPE, b.id).period_number == 2

    def test_stale_parked_number_recovered(self, store):
        """Ein liegengebliebener Platzhalter blockiert weder Anlegen noch Umnummerieren."""
        scheduler = TimetableScheduler(store)
        stale = scheduler.create_slot(SCOPE, _lesson("09:00", "09:45"))
        store.update_slot(SCOPE, stale.id, {"period_number": PLACEHOLDER_PERIOD_NUMBER + 1})

        early = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        assert early.period_number == 1
        assert store.get_slot(SCOPE, stale.id).period_number == 2
        assert is_densely_numbered(store.list_slots(SCOPE))

    def test_stale_placeholder_does_not_block_insert(self, store):
        """Auch ein Slot genau auf dem Platzhalter blockiert das nächste Anlegen nicht."""
        scheduler = TimetableScheduler(store)
        stale = scheduler.create_slot(SCOPE, _lesson("10:00", "10:45"))
        store.update_slot(SCOPE, stale.id, {"period_number": PLACEHOLDER_PERIOD_NUMBER})

        scheduler.create_slot(SCOPE, _lesson("11:00", "11:45"))
        assert _numbers_in_time_order(scheduler) == [1, 2]

    def test_is_densely_numbered(self, store):
        scheduler = TimetableScheduler(store)
        a = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        scheduler.create_slot(SCOPE, _lesson("09:00", "09:45"))
        assert is_densely_numbered(store.list_slots(SCOPE))
        assert is_densely_numbered([])

        store.update_slot(SCOPE, a.id, {"period_number": 5})
        assert not is_densely_numbered(store.list_slots(SCOPE))

    def test_find_overlaps(self):
        def _slot(start, end, n):
            return PeriodSlot(school_code="MUSTER", class_instance_id="5a",
                              class_date=SCOPE.class_date, period_number=n,
                              start_time=_t(start), end_time=_t(end))
        slots = [_slot("08:00", "09:00", 1), _slot("08:30", "09:15", 2), _slot("09:15", "10:00", 3)]
        pairs = find_overlaps(slots)
        assert [(a.period_number, b.period_number) for a, b in pairs] == [(1, 2)]


# ─── ANLEGEN ──────────────────────────────────────────────────────────────────

class TestCreateSlot:
    def test_created_slot_numbered_by_time(self, scheduler):
        """Ein früherer Slot schiebt die Nummern der späteren nach hinten."""
        late = scheduler.create_slot(SCOPE, _lesson("09:00", "09:45"))
        assert late.period_number == 1
        early = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        assert early.period_number == 1
        assert scheduler.store.get_slot(SCOPE, late.id).period_number == 2

    def test_placeholder_never_visible(self, scheduler):
        slot = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        assert slot.period_number < PLACEHOLDER_PERIOD_NUMBER
        assert all(s.period_number < PLACEHOLDER_PERIOD_NUMBER
                   for s in scheduler.get_day(SCOPE).slots)

    def test_break_created(self, scheduler):
        br = scheduler.create_slot(SCOPE, _pause("09:30", "09:45", "Frühstückspause"))
        assert isinstance(br, BreakSlot)
        assert br.name == "Frühstückspause"

    def test_audit_fields(self, scheduler):
        slot = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        assert slot.created_by == "tester"
        assert slot.created_at is not None

    def test_overlap_rejected_partition_unchanged(self, scheduler):
        """08:30-09:00 in einen Tag mit 08:00-09:00 → OverlapConflict, Tag unverändert."""
        existing = scheduler.create_slot(SCOPE, _lesson("08:00", "09:00"))
        before = scheduler.get_day(SCOPE).slots

        with pytest.raises(OverlapConflict) as exc:
            scheduler.create_slot(SCOPE, _lesson("08:30", "09:00"))

        assert exc.value.conflicting_start == _t("08:00")
        assert exc.value.conflicting_end == _t("09:00")
        assert exc.value.conflicting_id == existing.id
        assert "08:00–09:00" in str(exc.value)
        assert scheduler.get_day(SCOPE).slots == before

    def test_touching_boundaries_allowed(self, scheduler):
        scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        scheduler.create_slot(SCOPE, _pause("08:45", "09:00"))
        assert len(scheduler.get_day(SCOPE).slots) == 2

    @pytest.mark.parametrize("draft, field", [
        (SlotDraft(start_time=_t("08:00"), end_time=_t("08:45"), teacher_id="MUE"), "subject_id"),
        (SlotDraft(start_time=_t("08:00"), end_time=_t("08:45"), subject_id="M"), "teacher_id"),
        (SlotDraft(slot_type="break", start_time=_t("09:30"), end_time=_t("09:45")), "name"),
        (SlotDraft(slot_type="break", start_time=_t("09:30"), end_time=_t("09:45"), name="  "), "name"),
        (SlotDraft(slot_type="break", start_time=_t("09:30"), end_time=_t("09:45"),
                   name="Pause", subject_id="M"), "subject_id"),
        (_lesson("08:00", "08:45", name="Pause"), "name"),
        (_lesson("09:00", "08:00"), "end_time"),
        (_lesson("09:00", "09:00"), "end_time"),
        (_lesson("08:00", "08:45", syllabus_topic_id="T1"), "syllabus_topic_id"),
    ])
    def test_validation_before_store(self, scheduler, draft, field):
        """Ungültige Feldkombinationen werden ohne Store-Zugriff abgewiesen."""
        with pytest.raises(SlotValidationError) as exc:
            scheduler.create_slot(SCOPE, draft)
        assert exc.value.field == field
        assert scheduler.get_day(SCOPE).slots == []

    def test_plan_text_limit(self, store):
        scheduler = TimetableScheduler(store, plan_text_max_length=10)
        with pytest.raises(SlotValidationError) as exc:
            scheduler.create_slot(SCOPE, _lesson("08:00", "08:45", plan_text="x" * 11))
        assert exc.value.field == "plan_text"
        scheduler.create_slot(SCOPE, _lesson("08:00", "08:45", plan_text="x" * 10))


class TestSyllabusValidation:
    @pytest.fixture
    def scheduler(self, store):
        catalog = SyllabusCatalog.model_validate({
            "chapters": [{"id": "K1", "subject_id": "M"}, {"id": "K2", "subject_id": "D"}],
            "topics": [{"id": "T1", "chapter_id": "K1"}, {"id": "T2", "chapter_id": "K2"}],
        })
        return TimetableScheduler(store, catalog=catalog)

    def test_consistent_content_accepted(self, scheduler):
        slot = scheduler.create_slot(SCOPE, _lesson(
            "08:00", "08:45", subject="M", syllabus_chapter_id="K1", syllabus_topic_id="T1"))
        assert slot.syllabus_topic_id == "T1"

    def test_chapter_of_other_subject(self, scheduler):
        with pytest.raises(SlotValidationError) as exc:
            scheduler.create_slot(SCOPE, _lesson("08:00", "08:45", subject="M",
                                                 syllabus_chapter_id="K2"))
        assert exc.value.field == "syllabus_chapter_id"

    def test_topic_of_other_chapter(self, scheduler):
        with pytest.raises(SlotValidationError) as exc:
            scheduler.create_slot(SCOPE, _lesson("08:00", "08:45", subject="D",
                                                 syllabus_chapter_id="K2", syllabus_topic_id="T1"))
        assert exc.value.field == "syllabus_topic_id"

    def test_unknown_chapter(self, scheduler):
        with pytest.raises(SlotValidationError):
            scheduler.create_slot(SCOPE, _lesson("08:00", "08:45", syllabus_chapter_id="K9"))

    def test_update_checked_against_merged_slot(self, scheduler):
        """Fachwechsel ohne Kapitelwechsel macht den Slot inkonsistent."""
        slot = scheduler.create_slot(SCOPE, _lesson(
            "08:00", "08:45", subject="M", syllabus_chapter_id="K1"))
        with pytest.raises(SlotValidationError):
            scheduler.update_slot(SCOPE, slot.id, SlotPatch(subject_id="D"))


# ─── BEARBEITEN ───────────────────────────────────────────────────────────────

class TestUpdateSlot:
    def test_cascade_end_time_moves_next_start(self, scheduler, abc):
        """B endet 09:00 statt 09:30 → C beginnt um 09:00, A bleibt unverändert."""
        a, b, c = abc
        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("09:00")))

        store = scheduler.store
        assert result.slot.end_time == _t("09:00")
        assert store.get_slot(SCOPE, c.id).start_time == _t("09:00")
        assert store.get_slot(SCOPE, c.id).end_time == _t("10:15")
        assert store.get_slot(SCOPE, a.id) == a
        assert result.adjusted_neighbor_ids == [c.id]
        assert result.warnings == []

    def test_cascade_start_time_moves_previous_end(self, scheduler, abc):
        a, b, c = abc
        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(start_time=_t("09:00")))
        store = scheduler.store
        assert store.get_slot(SCOPE, a.id).end_time == _t("09:00")
        assert store.get_slot(SCOPE, c.id).start_time == _t("09:30")
        assert result.adjusted_neighbor_ids == [a.id]

    def test_cascade_not_transitive(self, scheduler, abc):
        """Nur der direkte Nachbar wird angepasst, nicht dessen Nachbar."""
        a, b, c = abc
        d = scheduler.create_slot(SCOPE, _lesson("10:15", "11:00"))
        scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("09:00")))
        assert scheduler.store.get_slot(SCOPE, d.id).start_time == _t("10:15")

    def test_no_cascade_without_time_change(self, scheduler, abc):
        a, b, c = abc
        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(plan_text="Diktat"))
        assert result.slot.plan_text == "Diktat"
        assert result.adjusted_neighbor_ids == []
        assert scheduler.store.get_slot(SCOPE, a.id) == a
        assert scheduler.store.get_slot(SCOPE, c.id) == c

    def test_neighbor_already_touching_not_written(self, scheduler):
        """Beginnt der Nachbar schon zur neuen Endzeit, wird nichts geschrieben."""
        b = scheduler.create_slot(SCOPE, _lesson("08:45", "09:30"))
        c = scheduler.create_slot(SCOPE, _lesson("09:45", "10:30"))
        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("09:45")))
        assert result.adjusted_neighbor_ids == []
        assert scheduler.store.get_slot(SCOPE, c.id) == c

    def test_extension_into_neighbor_rejected(self, scheduler, abc):
        """Verlängern in den Nachbarn hinein scheitert an der Überschneidung."""
        a, b, c = abc
        with pytest.raises(OverlapConflict) as exc:
            scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("09:45")))
        assert exc.value.start == _t("08:45")
        assert exc.value.end == _t("09:45")
        assert exc.value.conflicting_id == c.id
        assert scheduler.store.get_slot(SCOPE, b.id) == b

    def test_cascade_failure_is_warning(self):
        """Scheitert die Nachbar-Anpassung, gilt die Änderung trotzdem."""
        failing = _FailingUpdateStore()
        scheduler = TimetableScheduler(failing)
        a = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        b = scheduler.create_slot(SCOPE, _lesson("08:45", "09:30"))
        c = scheduler.create_slot(SCOPE, _lesson("09:30", "10:15"))
        failing.fail_ids.add(c.id)

        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("09:00")))

        assert result.slot.end_time == _t("09:00")
        assert result.has_warnings
        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.neighbor_id == c.id
        assert warning.side == "next"
        assert "Schreibfehler" in warning.reason
        assert failing.get_slot(SCOPE, c.id).start_time == _t("09:30")
        assert _numbers_in_time_order(scheduler) == [1, 2, 3]

    def test_scaffolding_period_editable_without_subject(self, scheduler):
        """Generierte Stunden ohne Fach dürfen schrittweise befüllt werden."""
        from config.schema import QuickGenerateSpec
        scheduler.quick_generate(SCOPE, QuickGenerateSpec(
            start_time=_t("08:00"), num_periods=2, period_duration_min=45))
        first = scheduler.get_day(SCOPE).slots[0]
        result = scheduler.update_slot(SCOPE, first.id, SlotPatch(plan_text="Einstieg"))
        assert result.slot.plan_text == "Einstieg"
        assert result.slot.subject_id is None

    def test_switch_to_break_requires_name(self, scheduler, abc):
        a, b, c = abc
        with pytest.raises(SlotValidationError) as exc:
            scheduler.update_slot(SCOPE, b.id, SlotPatch(slot_type="break"))
        assert exc.value.field == "name"

        result = scheduler.update_slot(SCOPE, b.id, SlotPatch(slot_type="break", name="Hofpause"))
        assert isinstance(result.slot, BreakSlot)
        assert result.slot.name == "Hofpause"
        assert result.slot.period_number == 2

    def test_period_fields_on_break_rejected(self, scheduler):
        br = scheduler.create_slot(SCOPE, _pause("09:30", "09:45"))
        with pytest.raises(SlotValidationError) as exc:
            scheduler.update_slot(SCOPE, br.id, SlotPatch(subject_id="M"))
        assert exc.value.field == "subject_id"

    def test_invalid_range_rejected(self, scheduler, abc):
        a, b, c = abc
        with pytest.raises(SlotValidationError):
            scheduler.update_slot(SCOPE, b.id, SlotPatch(end_time=_t("08:30")))

    def test_unknown_slot(self, scheduler):
        with pytest.raises(SlotNotFoundError):
            scheduler.update_slot(SCOPE, "gibt-es-nicht", SlotPatch(plan_text="x"))

    def test_moving_slot_renumbers(self, scheduler):
        a = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        b = scheduler.create_slot(SCOPE, _lesson("10:00", "10:45"))
        result = scheduler.update_slot(
            SCOPE, b.id, SlotPatch(start_time=_t("07:00"), end_time=_t("07:45")))
        assert result.slot.period_number == 1
        assert scheduler.store.get_slot(SCOPE, a.id).period_number == 2


# ─── LÖSCHEN ──────────────────────────────────────────────────────────────────

class TestDeleteSlot:
    def test_delete_renumbers_and_keeps_gap(self, scheduler, abc):
        """Löschen passt keine Nachbarzeiten an, die Lücke bleibt."""
        a, b, c = abc
        scheduler.delete_slot(SCOPE, b.id)
        slots = scheduler.get_day(SCOPE).slots
        assert [s.id for s in slots] == [a.id, c.id]
        assert [s.period_number for s in slots] == [1, 2]
        assert slots[0].end_time == _t("08:45")
        assert slots[1].start_time == _t("09:30")

    def test_delete_unknown(self, scheduler):
        with pytest.raises(SlotNotFoundError):
            scheduler.delete_slot(SCOPE, "gibt-es-nicht")


class TestDensity:
    def test_dense_after_mixed_operations(self, scheduler):
        """Nach beliebigen Änderungen sind die Nummern genau 1..N in Zeitreihenfolge."""
        ids = [scheduler.create_slot(SCOPE, _lesson(s, e)).id for s, e in (
            ("10:00", "10:45"), ("08:00", "08:45"), ("12:00", "12:45"), ("09:00", "09:45"))]
        scheduler.create_slot(SCOPE, _pause("11:00", "11:15"))
        scheduler.delete_slot(SCOPE, ids[1])
        scheduler.update_slot(SCOPE, ids[2], SlotPatch(start_time=_t("07:00"), end_time=_t("07:45")))
        scheduler.delete_slot(SCOPE, ids[3])
        scheduler.create_slot(SCOPE, _lesson("13:00", "13:45"))

        slots = scheduler.get_day(SCOPE).slots
        assert [s.period_number for s in slots] == list(range(1, len(slots) + 1))
        assert [s.start_time for s in slots] == sorted(s.start_time for s in slots)
        assert find_overlaps(slots) == []


# ─── STATUS ───────────────────────────────────────────────────────────────────

class TestStatus:
    @pytest.mark.parametrize("path", [
        [SlotStatus.DONE],
        [SlotStatus.CANCELLED],
        [SlotStatus.DONE, SlotStatus.PLANNED],
        [SlotStatus.DONE, SlotStatus.PLANNED, SlotStatus.CANCELLED],
    ])
    def test_allowed_transitions(self, scheduler, path):
        slot = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        for status in path:
            slot = scheduler.update_slot_status(SCOPE, slot.id, status)
        assert slot.status == path[-1]

    @pytest.mark.parametrize("path", [
        [SlotStatus.CANCELLED, SlotStatus.PLANNED],
        [SlotStatus.CANCELLED, SlotStatus.DONE],
        [SlotStatus.DONE, SlotStatus.CANCELLED],
    ])
    def test_forbidden_transitions(self, scheduler, path):
        slot = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        for status in path[:-1]:
            slot = scheduler.update_slot_status(SCOPE, slot.id, status)
        with pytest.raises(SlotValidationError) as exc:
            scheduler.update_slot_status(SCOPE, slot.id, path[-1])
        assert exc.value.field == "status"

    def test_same_status_noop(self, scheduler):
        slot = scheduler.create_slot(SCOPE, _lesson("08:00", "08:45"))
        again = scheduler.update_slot_status(SCOPE, slot.id, SlotStatus.PLANNED)
        assert again.updated_at == slot.updated_at

    def test_unknown_slot(self, scheduler):
        with pytest.raises(SlotNotFoundError):
            scheduler.update_slot_status(SCOPE, "gibt-es-nicht", SlotStatus.DONE)


# ─── LESEN ────────────────────────────────────────────────────────────────────

class TestReadAccess:
    def test_day_view_counts(self, scheduler, abc):
        scheduler.create_slot(SCOPE, _pause("10:15", "10:30"))
        view = scheduler.get_day(SCOPE)
        assert view.period_count == 3
        assert view.break_count == 1
        assert view.taught_slot_ids == set()

    def test_list_range(self, scheduler):
        for day in (19, 20, 23):
            scope = SCOPE.with_date(date(2026, 10, day))
            scheduler.create_slot(scope, _lesson("08:00", "08:45"))
        slots = scheduler.list_range("MUSTER", "5a", date(2026, 10, 19), date(2026, 10, 21))
        assert [s.class_date.day for s in slots] == [19, 20]

    def test_list_range_reversed(self, scheduler):
        with pytest.raises(SlotValidationError):
            scheduler.list_range("MUSTER", "5a", date(2026, 10, 21), date(2026, 10, 19))
