from datetime import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ─── SPEICHER ───

class StoreBackend(str, Enum):
    JSON = "json"
    MEMORY = "memory"


class StoreConfig(BaseModel):
    """Wo die Slots gespeichert werden."""
    # "json" = Datei (Standard), "memory" = nur für die Laufzeit des Prozesses
    backend: StoreBackend = Field(StoreBackend.JSON,
        description="Speicher-Backend (json / memory)")
    # Pfad der JSON-Speicherdatei
    path: str = Field("output/timetable.json",
        description="Pfad der JSON-Speicherdatei")


# ─── TAGESRASTER (Schnellgenerierung) ───

class BreakSpec(BaseModel):
    """Eine Pause im generierten Tagesplan."""
    # Nach welcher Stunde die Pause folgt (z.B. 2 = nach 2. Stunde)
    after_period: int = Field(ge=1)
    # Dauer der Pause in Minuten
    duration_min: int = Field(ge=1)
    # Bezeichnung, z.B. "Große Pause" oder "Mittagspause"
    name: str = "Pause"

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Pausen benötigen eine Bezeichnung.")
        return v


class QuickGenerateSpec(BaseModel):
    """Kompakte Beschreibung eines ganzen Schultags.

    Daraus werden fortlaufend Unterrichtsstunden gleicher Länge erzeugt,
    Pausen werden hinter der angegebenen Stunde eingeschoben.
    """
    # Beginn der ersten Stunde
    start_time: time = Field(description="Beginn der ersten Stunde")
    # Anzahl Unterrichtsstunden
    num_periods: int = Field(ge=1, le=20,
        description="Anzahl Unterrichtsstunden")
    # Dauer einer Unterrichtsstunde in Minuten
    period_duration_min: int = Field(ge=1, le=240,
        description="Dauer einer Stunde (Minuten)")
    # Pausen zwischen den Stunden
    breaks: list[BreakSpec] = Field(default_factory=list,
        description="Pausen zwischen den Stunden")

    @model_validator(mode="after")
    def validate_breaks(self):
        """Pausen müssen hinter existierenden Stunden liegen, höchstens eine je Stunde."""
        seen: set[int] = set()
        for br in self.breaks:
            if br.after_period > self.num_periods:
                raise ValueError(
                    f"Pause nach Stunde {br.after_period}, aber nur "
                    f"{self.num_periods} Stunden geplant")
            if br.after_period in seen:
                raise ValueError(
                    f"Mehrere Pausen nach Stunde {br.after_period}")
            seen.add(br.after_period)
        return self


# ─── FORTSCHRITT ───

class ProgressKeying(str, Enum):
    # Löschen über die Slot-ID (findet den Eintrag auch nach Änderungen am Slot)
    SLOT = "slot"
    # Löschen über Schule/Fach/Lehrkraft/Kapitel/Thema des aktuellen Slots
    CONTENT = "content"


class ProgressConfig(BaseModel):
    """Verknüpfung von Slots mit dem Stoff-Fortschritt."""
    keying: ProgressKeying = Field(ProgressKeying.SLOT,
        description="Wie 'unterrichtet'-Markierungen entfernt werden (slot / content)")


# ─── EINGABEPRÜFUNG ───

class ValidationConfig(BaseModel):
    # Maximale Länge der Stundennotiz
    plan_text_max_length: int = Field(500, ge=1, le=10000,
        description="Maximale Länge der Stundennotiz")


# ─── GESAMT-CONFIG ───

class SchedulerConfig(BaseModel):
    """Gesamtkonfiguration des Tagesplan-Schedulers."""
    # Kürzel der Schule, begrenzt alle Abfragen
    school_code: str = Field("MUSTER", min_length=1,
        description="Kürzel der Schule")
    # Speicher
    store: StoreConfig = Field(default_factory=StoreConfig)
    # Standard-Tagesraster für die Schnellgenerierung
    day_template: QuickGenerateSpec
    # Fortschritts-Verknüpfung
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    # Eingabeprüfung
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    # Optionaler Lehrplan-Katalog (JSON) für die Kapitel/Themen-Prüfung
    syllabus_path: Optional[str] = None
    # Log-Level für die Konsole
    log_level: str = Field("WARNING", description="DEBUG / INFO / WARNING / ERROR")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"Unbekanntes Log-Level: {v}")
        return v
