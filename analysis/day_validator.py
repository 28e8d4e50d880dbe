"""Nachträgliche Prüfung eines Tagesplans.

Prüft die gespeicherten Slots eines Tages auf verletzte Invarianten, als
Sicherheitsnetz unabhängig vom Scheduler (z.B. nach Handänderungen an der
Speicherdatei).
"""

from typing import Literal, Sequence

from pydantic import BaseModel

from models.slot import PeriodSlot, TimetableSlot
from scheduler.invariants import find_overlaps, is_densely_numbered, order_slots


class ValidationViolation(BaseModel):
    """Eine einzelne Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "time_overlap"
    description: str
    entity: str          # Stundennummer / Zeitspanne


class ValidationReport(BaseModel):
    """Ergebnis der Tagesprüfung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Tagesplan-Prüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Prüfung", width=20)
        table.add_column("Slot", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class DayValidator:
    """Prüft die Slots eines Tages (einer Klasse) auf Invarianten und Auffälligkeiten."""

    def validate(self, slots: Sequence[TimetableSlot]) -> ValidationReport:
        violations: list[ValidationViolation] = []

        violations.extend(self._check_time_ranges(slots))
        violations.extend(self._check_numbering(slots))
        violations.extend(self._check_overlaps(slots))
        violations.extend(self._check_gaps(slots))
        violations.extend(self._check_unassigned_periods(slots))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_time_ranges(self, slots: Sequence[TimetableSlot]) -> list[ValidationViolation]:
        """start_time < end_time. Kann nur bei umgangener Modellprüfung verletzt sein."""
        return [
            ValidationViolation(
                severity="error",
                constraint="invalid_range",
                entity=f"Stunde {s.period_number}",
                description=f"Beginn {s.start_time:%H:%M} liegt nicht vor Ende {s.end_time:%H:%M}.",
            )
            for s in slots
            if s.start_time >= s.end_time
        ]

    def _check_numbering(self, slots: Sequence[TimetableSlot]) -> list[ValidationViolation]:
        """Stundennummern müssen in Zeitreihenfolge genau 1..N sein."""
        if is_densely_numbered(slots):
            return []
        violations: list[ValidationViolation] = []
        for expected, s in enumerate(order_slots(slots), start=1):
            if s.period_number != expected:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="period_numbering",
                    entity=s.time_label,
                    description=f"Stundennummer {s.period_number}, erwartet {expected}.",
                ))
        return violations

    def _check_overlaps(self, slots: Sequence[TimetableSlot]) -> list[ValidationViolation]:
        return [
            ValidationViolation(
                severity="error",
                constraint="time_overlap",
                entity=f"Stunde {a.period_number}",
                description=(
                    f"{a.time_label} überschneidet sich mit "
                    f"Stunde {b.period_number} ({b.time_label})."
                ),
            )
            for a, b in find_overlaps(slots)
        ]

    def _check_gaps(self, slots: Sequence[TimetableSlot]) -> list[ValidationViolation]:
        """Lücken zwischen aufeinanderfolgenden Slots (z.B. nach dem Löschen)."""
        violations: list[ValidationViolation] = []
        ordered = order_slots(slots)
        for prev, nxt in zip(ordered, ordered[1:]):
            if prev.end_time < nxt.start_time:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="gap",
                    entity=f"Stunde {prev.period_number}",
                    description=(
                        f"Lücke {prev.end_time:%H:%M}–{nxt.start_time:%H:%M} "
                        f"vor Stunde {nxt.period_number}."
                    ),
                ))
        return violations

    def _check_unassigned_periods(self, slots: Sequence[TimetableSlot]) -> list[ValidationViolation]:
        """Unterrichtsstunden ohne Fach oder Lehrkraft (Gerüst aus der Generierung)."""
        return [
            ValidationViolation(
                severity="warning",
                constraint="unassigned_period",
                entity=f"Stunde {s.period_number}",
                description=f"{s.time_label}: Fach oder Lehrkraft fehlt.",
            )
            for s in slots
            if isinstance(s, PeriodSlot) and not s.is_assigned
        ]
