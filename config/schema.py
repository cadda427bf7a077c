from pydantic import BaseModel, Field
from enum import Enum


class OverflowPolicy(str, Enum):
    """Verhalten, wenn Modus B eine Pace nirgends im Quartal unterbringen kann."""
    REPORT = "report"   # Pace wird im Ergebnis als "unplaced" gemeldet (Standard)
    RAISE = "raise"     # Generierung bricht komplett ab (alles oder nichts)


# ─── KALENDER (Schuljahr-Raster) ───

class CalendarConfig(BaseModel):
    """Festes Schuljahr-Raster: Quartale × Wochen.

    Das Raster ist für die Projektion fix (4 × 9 = 36 Wochen). Die Felder
    existieren, damit Werte an einer Stelle dokumentiert und geprüft werden.
    Die Quartale heißen immer Q1..Q4 (config.defaults.QUARTER_NAMES).
    """
    # Anzahl Quartale pro Schuljahr
    quarters: int = Field(4, ge=4, le=4,
        description="Quartale pro Schuljahr (fix)")
    # Wochen pro Quartal
    weeks_per_quarter: int = Field(9, ge=9, le=9,
        description="Wochen pro Quartal (fix)")
    @property
    def total_weeks(self) -> int:
        """Gesamtzahl Wochen im Schuljahr."""
        return self.quarters * self.weeks_per_quarter


# ─── GENERIERUNG ───

class GenerationConfig(BaseModel):
    """Parameter des Projektions-Generators."""
    # Mindestanzahl Paces einer Projektion
    min_total_paces: int = Field(72, ge=1,
        description="Mindestanzahl Paces pro Projektion")
    # Höchstens eine Pace pro Woche und Fach → max. 36
    max_paces_per_subject: int = Field(36, ge=1, le=36,
        description="Maximale Paces pro Fach")
    # Maximal belegte Fächer pro Woche
    max_subjects_per_week: int = Field(3, ge=1, le=3,
        description="Maximale Fächer pro Woche")
    # Schwierigkeit, wenn im Request keine angegeben ist
    default_difficulty: int = Field(3, ge=1, le=5,
        description="Standard-Schwierigkeit (1–5)")
    # Umgang mit nicht platzierbaren Paces in Modus B
    overflow_policy: OverflowPolicy = Field(OverflowPolicy.REPORT,
        description="report = melden, raise = Generierung abbrechen")
    # Glättung dichter/dünner Wochen nach der Platzierung (nur Modus B)
    balance_weeks: bool = Field(True,
        description="Wochen nach der Platzierung ausgleichen")


# ─── QUARTALSABSCHLUSS ───

class RedistributionConfig(BaseModel):
    """Parameter für Quartalsabschluss und Umverteilung."""
    # Tage nach Quartalsende, in denen manuell abgeschlossen werden darf
    grace_period_days: int = Field(7, ge=0, le=60,
        description="Kulanzfrist nach Quartalsende (Tage)")


# ─── GESAMT-CONFIG ───

class ProjectionConfig(BaseModel):
    """Gesamtkonfiguration des Pace-Planers."""
    # Name der Schule (nur Anzeige)
    school_name: str = Field("Muster-Schule",
        description="Name der Schule")
    # Schuljahr-Raster
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)
    # Generator-Parameter
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    # Quartalsabschluss
    redistribution: RedistributionConfig = Field(default_factory=RedistributionConfig)
