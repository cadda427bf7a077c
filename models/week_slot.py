"""Datenmodell für eine Woche im Schuljahres-Raster."""

from dataclasses import dataclass, field

WEEKS_PER_QUARTER = 9


@dataclass(frozen=True)
class PlacedPace:
    """Eine im Raster belegte Pace.

    Immutable (frozen=True), damit sie in Sets und als Dict-Key taugt.
    """

    tracking_id: str
    category_id: str
    subject_id: str
    pace_code: str
    not_pair_with: frozenset[str] = frozenset()

    @property
    def order_index(self) -> int:
        return int(self.pace_code)


@dataclass
class WeekSlot:
    """Eine Woche des 36-Wochen-Rasters (Index 0..35)."""

    # Globaler Wochenindex (0 = Q1 Woche 1, 35 = Q4 Woche 9)
    index: int
    # Platzierte Paces in Einfügereihenfolge
    paces: list[PlacedPace] = field(default_factory=list)

    @property
    def quarter_index(self) -> int:
        """0-basiertes Quartal."""
        return self.index // WEEKS_PER_QUARTER

    @property
    def week(self) -> int:
        """1-basierte Woche innerhalb des Quartals."""
        return self.index % WEEKS_PER_QUARTER + 1

    @property
    def position(self) -> tuple[int, int]:
        """Vergleichbare Position (Quartal, Woche)."""
        return (self.quarter_index, self.week)

    @property
    def tracking_ids(self) -> set[str]:
        return {p.tracking_id for p in self.paces}

    @property
    def load(self) -> int:
        return len(self.paces)

    def __repr__(self) -> str:
        return f"WeekSlot(Q{self.quarter_index + 1}, W{self.week}, {self.load} Paces)"

    def __str__(self) -> str:
        return f"Q{self.quarter_index + 1}/W{self.week}"
