"""JSON-Datei-Store: In-Memory-Store, der jeden Stand als JSON-Datei sichert."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.progress import ProgressRecord
from models.slot import TimetableSlot
from store.errors import PersistenceError
from store.memory import InMemorySlotStore

logger = logging.getLogger(__name__)


class StoreSnapshot(BaseModel):
    """Vollständiger Inhalt der Speicherdatei."""

    slots: list[TimetableSlot] = []
    progress: list[ProgressRecord] = []
    saved_at: Optional[datetime] = None
    data_version: str = "1.0"


class JsonSlotStore(InMemorySlotStore):
    """Persistiert nach jedem Schreibvorgang bzw. am Ende einer Transaktion.

    Innerhalb einer Transaktion wird nicht geschrieben; ein Rollback lässt
    die Datei daher unverändert. Scheitert das Schreiben, wird auch der
    Zustand im Speicher zurückgesetzt.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            snapshot = self._load()
            self._slots = {s.id: s for s in snapshot.slots}
            self._progress = {r.id: r for r in snapshot.progress}
            logger.debug(
                f"Store geladen: {self.path} ({len(self._slots)} Slots, "
                f"{len(self._progress)} Fortschrittseinträge)"
            )

    def _load(self) -> StoreSnapshot:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return StoreSnapshot.model_validate_json(f.read())
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Speicherdatei nicht lesbar: {self.path}: {e}") from e

    def _persist(self) -> None:
        snapshot = StoreSnapshot(
            slots=sorted(self._slots.values(),
                         key=lambda s: (s.class_instance_id, s.class_date, s.period_number)),
            progress=list(self._progress.values()),
            saved_at=datetime.now(timezone.utc),
        )
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json(indent=2))
        except OSError as e:
            raise PersistenceError(f"Speicherdatei nicht schreibbar: {self.path}: {e}") from e
