"""Tests für die Tagesplan-Prüfung (DayValidator)."""

from datetime import date, time

import pytest

from analysis.day_validator import DayValidator, ValidationReport, ValidationViolation
from config.schema import BreakSpec, QuickGenerateSpec
from models.slot import BreakSlot, PeriodSlot
from models.scope import SlotScope
from scheduler import build_day_slots


SCOPE = SlotScope("MUSTER", "5a", date(2026, 10, 19))


def _period(start: str, end: str, number: int, assigned: bool = True) -> PeriodSlot:
    return PeriodSlot(
        school_code="MUSTER", class_instance_id="5a", class_date=SCOPE.class_date,
        period_number=number,
        start_time=time.fromisoformat(start), end_time=time.fromisoformat(end),
        subject_id="M" if assigned else None,
        teacher_id="MUE" if assigned else None,
    )


def _break(start: str, end: str, number: int) -> BreakSlot:
    return BreakSlot(
        school_code="MUSTER", class_instance_id="5a", class_date=SCOPE.class_date,
        period_number=number,
        start_time=time.fromisoformat(start), end_time=time.fromisoformat(end),
        name="Pause",
    )


def _constraints(report: ValidationReport, severity: str) -> list[str]:
    return [v.constraint for v in report.violations if v.severity == severity]


@pytest.fixture
def validator() -> DayValidator:
    return DayValidator()


class TestDayValidator:
    def test_valid_day(self, validator):
        slots = [_period("08:00", "08:45", 1), _break("08:45", "09:00", 2),
                 _period("09:00", "09:45", 3)]
        report = validator.validate(slots)
        assert report.is_valid
        assert report.violations == []

    def test_empty_day_valid(self, validator):
        assert validator.validate([]).is_valid

    def test_generated_day_only_warnings(self, validator):
        """Generiertes Gerüst ist gültig, meldet aber Stunden ohne Fach."""
        spec = QuickGenerateSpec(start_time=time(8), num_periods=3, period_duration_min=45,
                                 breaks=[BreakSpec(after_period=2, duration_min=15)])
        report = validator.validate(build_day_slots(SCOPE, spec))
        assert report.is_valid
        assert _constraints(report, "warning") == ["unassigned_period"] * 3

    def test_numbering_gap(self, validator):
        slots = [_period("08:00", "08:45", 1), _period("09:00", "09:45", 3)]
        report = validator.validate(slots)
        assert not report.is_valid
        assert "period_numbering" in _constraints(report, "error")

    def test_numbering_not_in_time_order(self, validator):
        slots = [_period("08:00", "08:45", 2), _period("08:45", "09:30", 1)]
        report = validator.validate(slots)
        assert _constraints(report, "error") == ["period_numbering", "period_numbering"]

    def test_overlap(self, validator):
        slots = [_period("08:00", "09:00", 1), _period("08:30", "09:15", 2)]
        report = validator.validate(slots)
        assert _constraints(report, "error") == ["time_overlap"]
        assert "08:30–09:15" in report.errors[0].description

    def test_gap_warning(self, validator):
        """Nach dem Löschen entsteht eine Lücke, das ist nur eine Warnung."""
        slots = [_period("08:00", "08:45", 1), _period("09:30", "10:15", 2)]
        report = validator.validate(slots)
        assert report.is_valid
        assert _constraints(report, "warning") == ["gap"]
        assert "08:45–09:30" in report.warnings[0].description

    def test_invalid_range_detected(self, validator):
        """Auch ohne Modellprüfung erzeugte Slots werden erkannt."""
        broken = PeriodSlot.model_construct(
            school_code="MUSTER", class_instance_id="5a", class_date=SCOPE.class_date,
            period_number=1, start_time=time(9), end_time=time(8),
            subject_id="M", teacher_id="MUE", slot_type="period",
        )
        report = validator.validate([broken])
        assert "invalid_range" in _constraints(report, "error")

    def test_print_rich_runs(self, validator):
        """print_rich läuft ohne Fehler durch."""
        slots = [_period("08:00", "09:00", 1), _period("08:30", "09:15", 3, assigned=False)]
        validator.validate(slots).print_rich()
        ValidationReport(violations=[], is_valid=True).print_rich()

    def test_violation_model(self):
        v = ValidationViolation(severity="warning", constraint="gap",
                                description="Lücke", entity="Stunde 1")
        assert v.severity == "warning"
