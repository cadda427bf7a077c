from typing import Optional

from config.schema import (
    CalendarConfig,
    GenerationConfig,
    ProjectionConfig,
    RedistributionConfig,
)

# ─── Raster-Konstanten ────────────────────────────────────────────────────────

QUARTERS = 4
WEEKS_PER_QUARTER = 9
TOTAL_WEEKS = QUARTERS * WEEKS_PER_QUARTER   # 36
MAX_SUBJECTS_PER_WEEK = 3
MIN_TOTAL_PACES = 72
MAX_PACES_PER_SUBJECT = TOTAL_WEEKS
DEFAULT_DIFFICULTY = 3
QUARTER_NAMES = ["Q1", "Q2", "Q3", "Q4"]


def quarter_index(name: str) -> int:
    """'Q1' → 0 … 'Q4' → 3. Akzeptiert auch '1'..'4'."""
    normalized = name if name.startswith("Q") else f"Q{name}"
    return QUARTER_NAMES.index(normalized)


def next_quarter_name(name: str) -> Optional[str]:
    """Nachfolgendes Quartal oder None nach Q4."""
    idx = quarter_index(name)
    if idx + 1 >= len(QUARTER_NAMES):
        return None
    return QUARTER_NAMES[idx + 1]


# ─── Fach-Metadaten für Demo-Projektionen ─────────────────────────────────────
# Kategorie → typischer Pace-Bereich einer Jahrgangsstufe, Schwierigkeit,
# ausgeschlossene Kategorien (notPairWith).

CATEGORY_METADATA: dict[str, dict] = {
    "Math": {
        "subject": "Math 1",
        "start": 1001, "end": 1012,
        "difficulty": 5,
        "not_pair_with": ["Science"],
    },
    "English": {
        "subject": "English 1",
        "start": 1001, "end": 1012,
        "difficulty": 4,
        "not_pair_with": [],
    },
    "Word Building": {
        "subject": "Word Building 1",
        "start": 1001, "end": 1012,
        "difficulty": 2,
        "not_pair_with": [],
    },
    "Science": {
        "subject": "Science 1",
        "start": 1001, "end": 1012,
        "difficulty": 4,
        "not_pair_with": ["Math"],
    },
    "Social Studies": {
        "subject": "Social Studies 1",
        "start": 1001, "end": 1012,
        "difficulty": 3,
        "not_pair_with": [],
    },
    "Spanish": {
        "subject": "Spanish 1",
        "start": 1001, "end": 1012,
        "difficulty": 1,
        "not_pair_with": [],
    },
}


# ─── Default-Konfiguration ────────────────────────────────────────────────────

def default_calendar() -> CalendarConfig:
    """Standard-Schuljahr: 4 Quartale × 9 Wochen."""
    return CalendarConfig(
        quarters=QUARTERS,
        weeks_per_quarter=WEEKS_PER_QUARTER,
    )


def default_projection_config() -> ProjectionConfig:
    """Vollständige Standard-Konfiguration."""
    return ProjectionConfig(
        school_name="Muster-Schule",
        calendar=default_calendar(),
        generation=GenerationConfig(
            min_total_paces=MIN_TOTAL_PACES,
            max_paces_per_subject=MAX_PACES_PER_SUBJECT,
            max_subjects_per_week=MAX_SUBJECTS_PER_WEEK,
            default_difficulty=DEFAULT_DIFFICULTY,
        ),
        redistribution=RedistributionConfig(),
    )
