"""Fehler der Persistenzschicht.

Der Scheduler übersetzt diese Fehler in eigene Fachfehler
(siehe ``scheduler.errors``).
"""

from typing import Optional


class StoreError(Exception):
    """Basisklasse für alle Store-Fehler."""


class OverlapRejected(StoreError):
    """Zeitraum schneidet einen bestehenden Slot derselben Partition."""

    def __init__(self, conflicting) -> None:
        self.conflicting = conflicting
        super().__init__(
            f"Überschneidung mit Slot {conflicting.id} ({conflicting.time_label})"
        )


class DuplicatePeriodNumber(StoreError):
    """Stundennummer ist in der Partition bereits vergeben."""

    def __init__(self, period_number: int) -> None:
        self.period_number = period_number
        super().__init__(f"Stundennummer {period_number} bereits vergeben")


class RecordNotFound(StoreError):
    def __init__(self, record_id: Optional[str]) -> None:
        self.record_id = record_id
        super().__init__(f"Eintrag nicht gefunden: {record_id}")


class InvalidRecord(StoreError):
    """Änderung würde einen ungültigen Datensatz erzeugen."""


class PersistenceError(StoreError):
    """Schreiben oder Lesen der Speicherdatei fehlgeschlagen."""
