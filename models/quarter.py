"""Datenmodelle für Schuljahr und Quartal (Pydantic v2)."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config.defaults import QUARTER_NAMES


class SchoolYear(BaseModel):
    """Schuljahr einer Schule."""

    id: str
    school_id: str
    name: str                     # "2025/26"


class Quarter(BaseModel):
    """Quartal eines Schuljahres."""

    id: str
    school_year_id: str
    name: str                     # "Q1".."Q4"
    order: int = Field(ge=1, le=4)
    weeks_count: int = Field(9, ge=1, le=9)
    start_date: date
    end_date: date
    is_closed: bool = False
    closed_at: Optional[datetime] = None
    closed_by: Optional[str] = None   # None = automatisch geschlossen

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        v = v.strip().upper()
        v = v if v.startswith("Q") else f"Q{v}"
        if v not in QUARTER_NAMES:
            raise ValueError(f"Unbekanntes Quartal {v!r}")
        return v

    @model_validator(mode='after')
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError(
                f"Quartal {self.name}: Ende ({self.end_date}) vor Beginn ({self.start_date})"
            )
        return self
