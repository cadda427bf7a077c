"""Gemeinsame Hilfsfunktionen für den Export."""

from datetime import date

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "Math":           "B3D4FF",
    "English":        "FFF2B3",
    "Word Building":  "FFE0B3",
    "Science":        "B3FFB3",
    "Social Studies": "D4B3FF",
    "Spanish":        "FFB3E6",
    "sonstig":        "E0E0E0",
    "free":           "F5F5F5",
    "overflow":       "FF9999",
    "quarter":        "DDEBF7",
    "header":         "4472C4",
}


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def get_category_color(category_id: str) -> str:
    """Hex-Farbe einer Kategorie, Fallback grau."""
    return COLORS.get(category_id, COLORS["sonstig"])


def week_label(quarter: int, week: int) -> str:
    """(1, 3) → 'Q1 W3'."""
    return f"Q{quarter} W{week}"
