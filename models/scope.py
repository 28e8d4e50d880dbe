"""Geltungsbereich eines Tagesplans: Schule, Klasse und Datum."""

from dataclasses import dataclass, replace
from datetime import date


@dataclass(frozen=True)
class SlotScope:
    """Partition eines Tagesplans (eine Klasse an einem Tag).

    Wird explizit an jeden Scheduler- und Store-Aufruf übergeben.
    Immutable (frozen=True) damit er als Dict-Key / Set-Element nutzbar ist.
    """

    school_code: str
    class_instance_id: str
    class_date: date

    @classmethod
    def parse(cls, school_code: str, class_instance_id: str, class_date: str) -> "SlotScope":
        """Erzeugt einen Scope aus einem ISO-Datum ("YYYY-MM-DD")."""
        return cls(school_code, class_instance_id, date.fromisoformat(class_date))

    def with_date(self, class_date: date) -> "SlotScope":
        """Gleiche Schule und Klasse, anderer Tag."""
        return replace(self, class_date=class_date)

    def __str__(self) -> str:
        return f"{self.school_code}/{self.class_instance_id}/{self.class_date.isoformat()}"
