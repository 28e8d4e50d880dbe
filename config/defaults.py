from datetime import time

from config.schema import (
    BreakSpec,
    ProgressConfig,
    QuickGenerateSpec,
    SchedulerConfig,
    StoreConfig,
    ValidationConfig,
)


def default_day_template() -> QuickGenerateSpec:
    """Standard-Tagesraster für die Schnellgenerierung.

    Stundenraster:
    1. Stunde  08:00 - 08:45
    2. Stunde  08:45 - 09:30
       ── Große Pause (20 min) ──
    3. Stunde  09:50 - 10:35
    4. Stunde  10:35 - 11:20
       ── Pause (15 min) ──
    5. Stunde  11:35 - 12:20
    6. Stunde  12:20 - 13:05
       ── Mittagspause (30 min) ──
    7. Stunde  13:35 - 14:20

    Ergibt 10 Slots (7 Stunden + 3 Pausen), lückenlos aneinander.
    """
    return QuickGenerateSpec(
        start_time=time(8, 0),
        num_periods=7,
        period_duration_min=45,
        breaks=[
            BreakSpec(after_period=2, duration_min=20, name="Große Pause"),
            BreakSpec(after_period=4, duration_min=15, name="Pause"),
            BreakSpec(after_period=6, duration_min=30, name="Mittagspause"),
        ],
    )


def default_scheduler_config() -> SchedulerConfig:
    """Vollständige Standard-Konfiguration."""
    return SchedulerConfig(
        school_code="MUSTER",
        store=StoreConfig(),
        day_template=default_day_template(),
        progress=ProgressConfig(),
        validation=ValidationConfig(),
    )
