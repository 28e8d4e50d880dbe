"""Lehrplan-Katalog: Kapitel gehören zu Fächern, Themen zu Kapiteln (Pydantic v2)."""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class SyllabusChapter(BaseModel):
    id: str
    subject_id: str
    title: str = ""


class SyllabusTopic(BaseModel):
    id: str
    chapter_id: str
    title: str = ""


class SyllabusCatalog(BaseModel):
    """Nachschlagewerk für die Prüfung "Thema gehört zum Kapitel des Fachs"."""

    chapters: list[SyllabusChapter] = []
    topics: list[SyllabusTopic] = []

    def chapter_subject(self, chapter_id: str) -> Optional[str]:
        """Fach-ID eines Kapitels oder None wenn unbekannt."""
        for ch in self.chapters:
            if ch.id == chapter_id:
                return ch.subject_id
        return None

    def topic_chapter(self, topic_id: str) -> Optional[str]:
        """Kapitel-ID eines Themas oder None wenn unbekannt."""
        for tp in self.topics:
            if tp.id == topic_id:
                return tp.chapter_id
        return None

    @classmethod
    def load_json(cls, path: Path) -> "SyllabusCatalog":
        """Lädt einen Katalog aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Lehrplan-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))
