"""Fachfehler des Tagesplan-Schedulers.

Validierungs- und Konfliktfehler nennen Feld bzw. Zeitspannen, damit die
Eingabe korrigiert werden kann. Fehler bei Teil-Generierung und bei der
Nachbar-Anpassung werden allgemein gemeldet.
"""

from datetime import time
from typing import Optional


class SchedulerError(Exception):
    """Basisklasse aller Fehler des Schedulers."""


class SlotValidationError(SchedulerError):
    """Unzulässige Feldkombination oder Zeitspanne. Wird vor jedem
    Store-Aufruf geworfen und nie wiederholt."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class OverlapConflict(SchedulerError):
    """Der Store hat eine überschneidende Zeitspanne abgelehnt."""

    def __init__(
        self,
        start: time,
        end: time,
        conflicting_start: time,
        conflicting_end: time,
        conflicting_id: Optional[str] = None,
    ) -> None:
        self.start = start
        self.end = end
        self.conflicting_start = conflicting_start
        self.conflicting_end = conflicting_end
        self.conflicting_id = conflicting_id
        super().__init__(
            f"Zeitraum {start:%H:%M}–{end:%H:%M} überschneidet sich mit dem "
            f"bestehenden Slot {conflicting_start:%H:%M}–{conflicting_end:%H:%M}. "
            f"Bitte andere Zeiten wählen."
        )


class UniqueNumberConflict(SchedulerError):
    def __init__(self, period_number: int) -> None:
        self.period_number = period_number
        super().__init__(
            f"Stundennummer {period_number} ist für diese Klasse und dieses Datum "
            f"bereits vergeben. Bitte erneut versuchen."
        )


class SlotNotFoundError(SchedulerError):
    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Slot nicht gefunden: {slot_id}")


class AdjacentAdjustmentFailure(SchedulerError):
    """Anpassung eines Nachbar-Slots fehlgeschlagen.

    Wird nie geworfen, sondern als Warnung an das Ergebnis der
    übergeordneten Änderung gehängt.
    """

    def __init__(self, neighbor_id: str, side: str, reason: str) -> None:
        self.neighbor_id = neighbor_id
        self.side = side            # "previous" / "next"
        self.reason = reason
        super().__init__(
            f"Nachbar-Slot {neighbor_id} ({side}) konnte nicht angepasst werden."
        )


class PartialGenerationFailure(SchedulerError):
    """Ersetzen eines Tages ist unterwegs fehlgeschlagen.

    Bei ``rolled_back=False`` kann der Tag leer oder nur teilweise befüllt sein.
    """

    def __init__(self, stage: str, rolled_back: bool) -> None:
        self.stage = stage          # "delete" / "insert" / "renumber"
        self.rolled_back = rolled_back
        state = (
            "Der vorherige Stand wurde wiederhergestellt."
            if rolled_back
            else "Der Tag kann leer oder unvollständig sein."
        )
        super().__init__(
            f"Tagesplan konnte nicht vollständig erzeugt werden. {state} "
            f"Bitte die Generierung wiederholen."
        )
