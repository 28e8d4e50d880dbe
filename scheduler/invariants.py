"""Invarianten eines Tagesplans: dichte Nummerierung und keine Überschneidungen.

``renumber`` ist die einzige Stelle, die Stundennummern vergibt. Überschneidungen
werden atomar vom Store abgewiesen; ``find_overlaps`` dient nur der
nachträglichen Prüfung.
"""

import logging
from typing import Sequence

from models.scope import SlotScope
from models.slot import TimetableSlot
from store.base import SlotStore

logger = logging.getLogger(__name__)

# Vorläufige Stundennummer beim Anlegen. Größer als jede legitime Anzahl
# (ein Tag hat 1440 Minuten, ein Slot dauert mindestens eine).
PLACEHOLDER_PERIOD_NUMBER = 10_000


def order_slots(slots: Sequence[TimetableSlot]) -> list[TimetableSlot]:
    """Slots aufsteigend nach Beginn (bei Gleichstand nach Ende)."""
    return sorted(slots, key=lambda s: (s.start_time, s.end_time))


def find_overlaps(
    slots: Sequence[TimetableSlot],
) -> list[tuple[TimetableSlot, TimetableSlot]]:
    """Alle Paare mit sich schneidenden Zeitspannen."""
    ordered = order_slots(slots)
    pairs: list[tuple[TimetableSlot, TimetableSlot]] = []
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if b.start_time >= a.end_time:
                break
            pairs.append((a, b))
    return pairs


def parking_base(slots: Sequence[TimetableSlot]) -> int:
    """Höchste belegte Nummer, mindestens der Platzhalter. Darüber ist alles frei."""
    return max([PLACEHOLDER_PERIOD_NUMBER, *(s.period_number for s in slots)])


def is_densely_numbered(slots: Sequence[TimetableSlot]) -> bool:
    """True wenn die Nummern in Zeitreihenfolge genau 1..N sind."""
    return [s.period_number for s in order_slots(slots)] == list(range(1, len(slots) + 1))


def renumber(store: SlotStore, scope: SlotScope) -> int:
    """Nummeriert die Partition dicht und in Zeitreihenfolge (1..N).

    Schreibt nur Slots zurück, deren Nummer sich ändert. Da der Store die
    Eindeutigkeit bei jedem einzelnen Schreibvorgang prüft, werden geänderte
    Slots zunächst auf freie Nummern oberhalb des Platzhalters und der
    höchsten vorhandenen Nummer geparkt.

    Returns:
        Anzahl der umnummerierten Slots.
    """
    slots = store.list_slots(scope)
    targets = {s.id: i for i, s in enumerate(slots, start=1)}
    changed = [s for s in slots if s.period_number != targets[s.id]]
    if not changed:
        return 0

    # Auch liegengebliebene Platzhalter eines abgebrochenen Laufs liegen darunter.
    base = parking_base(slots)
    for offset, slot in enumerate(changed, start=1):
        store.update_slot(scope, slot.id, {"period_number": base + offset})
    for slot in changed:
        store.update_slot(scope, slot.id, {"period_number": targets[slot.id]})

    logger.debug(f"{scope}: {len(changed)} von {len(slots)} Slots umnummeriert")
    return len(changed)
