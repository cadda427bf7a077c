"""Ausgabemodelle des Projektions-Generators (Pydantic v2)."""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class GenerationMode(str, Enum):
    """Gewählte Platzierungsstrategie."""
    UNIFORM_PAIRING = "uniform_pairing"          # Modus A
    FREQUENCY_ROUND_ROBIN = "frequency_round_robin"  # Modus B


class GeneratedPace(BaseModel):
    """Eine platzierte Pace: Fach + Code → (Quartal, Woche)."""

    category_id: str
    subject_id: str
    pace_code: str
    quarter: int = Field(ge=1, le=4)
    week: int = Field(ge=1, le=9)

    @property
    def order_index(self) -> int:
        return int(self.pace_code)

    @property
    def week_index(self) -> int:
        """Globale Woche 0..35."""
        return (self.quarter - 1) * 9 + (self.week - 1)


class UnplacedPace(BaseModel):
    """Pace, für die im Quartal kein Platz gefunden wurde (nur Modus B)."""

    category_id: str
    subject_id: str
    pace_code: str
    quarter: int = Field(ge=1, le=4)
    reason: str


class PairingRelaxation(BaseModel):
    """Pace, die nur unter Verletzung von not_pair_with platziert werden konnte."""

    category_id: str
    subject_id: str
    pace_code: str
    quarter: int
    week: int
    conflicts_with: list[str]     # Kategorien der Wochenpartner


class GenerationResult(BaseModel):
    """Ergebnis eines Generator-Laufs inkl. Diagnose."""

    mode: GenerationMode
    paces: list[GeneratedPace]
    unplaced: list[UnplacedPace] = []
    relaxations: list[PairingRelaxation] = []
    requested_total: int = 0
    student_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return not self.unplaced

    def summary(self) -> str:
        subjects = sorted({p.subject_id for p in self.paces})
        mode_label = (
            "Modus A (Schwierigkeits-Paare)"
            if self.mode == GenerationMode.UNIFORM_PAIRING
            else "Modus B (Frequenz-Rotation)"
        )
        lines = [
            f"Strategie: {mode_label}",
            f"Fächer: {len(subjects)}",
            f"Platziert: {len(self.paces)} / {self.requested_total}",
        ]
        if self.unplaced:
            lines.append(f"Nicht platziert: {len(self.unplaced)}")
        if self.relaxations:
            lines.append(f"Gelockerte Paarungen: {len(self.relaxations)}")
        return "\n".join(lines)

    def paces_by_week(self) -> dict[tuple[int, int], list[GeneratedPace]]:
        """(Quartal, Woche) → Paces dieser Woche."""
        grid: dict[tuple[int, int], list[GeneratedPace]] = {}
        for p in self.paces:
            grid.setdefault((p.quarter, p.week), []).append(p)
        return grid

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Speichert das Ergebnis als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        stamped = self.model_copy(update={
            "created_at": self.created_at or datetime.now(timezone.utc),
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(stamped.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "GenerationResult":
        """Lädt ein gespeichertes Ergebnis."""
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls.model_validate(raw)
