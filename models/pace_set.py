"""Eingabemodell: angeforderte Pace-Sets einer Projektion (Pydantic v2)."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PaceSetRequest(BaseModel):
    """Ein Fach mit seinem Pace-Bereich für die Generierung."""

    category_id: str                              # "Math", "English", ...
    subject_id: str                               # "Math 7"
    start_pace: int                               # erste Pace (inklusive)
    end_pace: int                                 # letzte Pace (inklusive)
    skip_paces: list[int] = []                    # ausgelassene Pace-Nummern
    not_pair_with: list[str] = []                 # Kategorien, nie in derselben Woche
    difficulty: Optional[int] = None              # 1–5, None → Standard (3)
    subject_name: Optional[str] = None

    @field_validator("difficulty")
    @classmethod
    def _check_difficulty(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 1 <= v <= 5:
            raise ValueError(f"Schwierigkeit muss zwischen 1 und 5 liegen, nicht {v}")
        return v

    @property
    def display_name(self) -> str:
        return self.subject_name or self.subject_id


class ProjectionRequest(BaseModel):
    """Komplette Generierungsanfrage für einen Schüler."""

    subjects: list[PaceSetRequest] = Field(default_factory=list)
    student_id: Optional[str] = None

    def total_requested(self) -> int:
        """Summe aller Pace-Bereiche abzüglich ausgelassener Paces."""
        from solver.normalizer import expand_pace_codes
        return sum(len(expand_pace_codes(s)) for s in self.subjects)

    def save_json(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "ProjectionRequest":
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
