"""Schnellgenerierung und Kopieren ganzer Schultage.

Beides ersetzt den Zieltag vollständig (löschen, einfügen, neu nummerieren).
Die drei Schritte laufen in ``store.transaction()``; ohne echte Transaktion
kann ein Fehler den Tag leer oder halb befüllt zurücklassen.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from config.schema import QuickGenerateSpec
from models.scope import SlotScope
from models.slot import BreakSlot, PeriodSlot, SlotStatus, TimetableSlot
from scheduler.errors import PartialGenerationFailure, SlotValidationError
from scheduler.invariants import renumber
from store.base import SlotStore
from store.errors import StoreError

logger = logging.getLogger(__name__)

_ANCHOR = date(2000, 1, 1)


def add_minutes(t: time, minutes: int) -> time:
    """Uhrzeit plus Minuten. Ein Überlauf über Mitternacht ist ein Fehler."""
    moved = datetime.combine(_ANCHOR, t) + timedelta(minutes=minutes)
    if moved.date() != _ANCHOR:
        raise SlotValidationError(
            "start_time",
            f"{t:%H:%M} + {minutes} min reicht über Mitternacht hinaus.",
        )
    return moved.time()


def build_day_slots(
    scope: SlotScope, spec: QuickGenerateSpec, actor: Optional[str] = None
) -> list[TimetableSlot]:
    """Erzeugt die Slots eines Tages aus dem Raster (ohne Store-Zugriff).

    Unterrichtsstunden folgen lückenlos aufeinander; eine Pause mit
    ``after_period = i`` wird direkt hinter Stunde i eingeschoben.
    Stundennummern laufen 1, 2, 3, … über Stunden und Pausen hinweg.
    Fach, Lehrkraft und Notiz bleiben leer.
    """
    common = dict(
        school_code=scope.school_code,
        class_instance_id=scope.class_instance_id,
        class_date=scope.class_date,
        created_by=actor,
    )
    breaks = {br.after_period: br for br in spec.breaks}
    slots: list[TimetableSlot] = []
    clock = spec.start_time

    for i in range(1, spec.num_periods + 1):
        end = add_minutes(clock, spec.period_duration_min)
        slots.append(PeriodSlot(
            period_number=len(slots) + 1, start_time=clock, end_time=end, **common))
        clock = end

        br = breaks.get(i)
        if br is not None:
            end = add_minutes(clock, br.duration_min)
            slots.append(BreakSlot(
                name=br.name, period_number=len(slots) + 1,
                start_time=clock, end_time=end, **common))
            clock = end

    return slots


class DayGenerator:
    """Ersetzt einen kompletten Tag einer Klasse."""

    def __init__(self, store: SlotStore, actor: Optional[str] = None) -> None:
        self.store = store
        self.actor = actor

    def quick_generate(self, scope: SlotScope, spec: QuickGenerateSpec) -> list[TimetableSlot]:
        """Löscht alle Slots des Tages und legt das Raster neu an.

        Bestehende Slots gehen dabei samt Status verloren; Aufrufer müssen
        das vorher bestätigen lassen.

        Raises:
            SlotValidationError: Raster reicht über Mitternacht.
            PartialGenerationFailure: Ein Schritt ist fehlgeschlagen.
        """
        slots = build_day_slots(scope, spec, self.actor)
        created = self._replace_day(scope, slots)
        logger.info(
            f"{scope}: Tag generiert ({spec.num_periods} Stunden, "
            f"{len(spec.breaks)} Pausen, {len(created)} Slots)"
        )
        return created

    def copy_day(
        self, source: SlotScope, target_date: date, overwrite: bool = False
    ) -> list[TimetableSlot]:
        """Kopiert alle Slots eines Tages auf ein anderes Datum derselben Klasse.

        Der Status der Kopien wird auf planned zurückgesetzt,
        "unterrichtet"-Markierungen werden nicht übernommen.
        """
        if target_date == source.class_date:
            raise SlotValidationError("target_date", "Zieldatum muss vom Quelldatum abweichen.")
        originals = self.store.list_slots(source)
        if not originals:
            raise SlotValidationError("source_date", f"Am {source.class_date} gibt es keine Slots.")

        target = source.with_date(target_date)
        if not overwrite and self.store.list_slots(target):
            raise SlotValidationError(
                "target_date",
                f"Am {target_date} gibt es bereits Slots. Zum Ersetzen overwrite setzen.",
            )

        copies = [
            s.model_copy(update={
                "id": None,
                "class_date": target_date,
                "status": SlotStatus.PLANNED,
                "created_by": self.actor,
                "created_at": None,
                "updated_at": None,
            })
            for s in originals
        ]
        created = self._replace_day(target, copies)
        logger.info(f"{source}: {len(created)} Slots nach {target_date} kopiert")
        return created

    def _replace_day(self, scope: SlotScope, slots: list[TimetableSlot]) -> list[TimetableSlot]:
        """Saga löschen → einfügen → nummerieren, mit Protokoll des Schritts."""
        stage = "delete"
        try:
            with self.store.transaction():
                removed = self.store.delete_all_slots(scope)
                stage = "insert"
                self.store.insert_many_slots(slots)
                stage = "renumber"
                renumber(self.store, scope)
                stage = "commit"
        except StoreError as e:
            rolled_back = self.store.supports_transactions
            logger.warning(
                f"{scope}: Ersetzen des Tages in Schritt '{stage}' fehlgeschlagen: {e} "
                f"(zurückgerollt: {rolled_back})"
            )
            raise PartialGenerationFailure(stage, rolled_back) from e

        logger.debug(f"{scope}: {removed} alte Slots ersetzt")
        return self.store.list_slots(scope)
