"""Persistierte Projektionsdaten: Katalog, Projektion, Pace-Zeilen (Pydantic v2)."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from config.defaults import QUARTER_NAMES


class PaceStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    UNFINISHED = "UNFINISHED"


class ProjectionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PaceCatalogEntry(BaseModel):
    """Katalogeintrag einer Pace (Stammdaten)."""

    id: str
    code: str                     # "1005"
    order_index: int              # Reihenfolge innerhalb der Kategorie
    subject_id: str
    subject_name: str
    category_id: str
    category_name: str
    is_elective: bool = False

    @property
    def category_key(self) -> str:
        """Schlüssel für Reihenfolge und Wochen-Exklusivität.

        Wahlfächer teilen sich eine Kategorie, laufen aber unabhängig
        voneinander und werden deshalb pro Fach geführt.
        """
        return self.subject_id if self.is_elective else self.category_id


class Projection(BaseModel):
    """Jahresprojektion eines Schülers."""

    id: str
    student_id: str
    school_id: str
    school_year_id: str
    status: ProjectionStatus = ProjectionStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.status == ProjectionStatus.OPEN


class ProjectionPace(BaseModel):
    """Eine Pace-Zeile einer Projektion."""

    id: str
    projection_id: str
    pace_catalog_id: str
    quarter: str                                  # "Q1".."Q4"
    week: int = Field(ge=1, le=9)
    grade: Optional[float] = None                 # None = nicht benotet
    status: PaceStatus = PaceStatus.PENDING
    original_quarter: Optional[str] = None        # vor der ersten Umverteilung
    original_week: Optional[int] = None
    deleted_at: Optional[datetime] = None         # Soft-Delete

    @field_validator("quarter", "original_quarter")
    @classmethod
    def normalize_quarter(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        v = v if v.startswith("Q") else f"Q{v}"
        if v not in QUARTER_NAMES:
            raise ValueError(f"Unbekanntes Quartal {v!r} (erlaubt: {', '.join(QUARTER_NAMES)})")
        return v

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_graded(self) -> bool:
        return self.grade is not None
