"""Modus A: gleichförmiger Lehrplan, Paarung nach Schwierigkeit.

Voraussetzung: genau 72 Paces, alle Fächer gleich viele Paces, gerade
Fächerzahl. Das schwerste Fach wird mit dem leichtesten gepaart, das
zweitschwerste mit dem zweitleichtesten usw. Jedes Paar belegt eine Woche
eines rotierenden Cursors über alle 36 Wochen.
"""

import logging

from config.defaults import MIN_TOTAL_PACES, TOTAL_WEEKS
from solver.errors import ConstraintViolationError
from solver.lattice import WeekLattice
from solver.normalizer import SubjectPlan

logger = logging.getLogger(__name__)

PAIRING_ERROR = "Invalid difficulty pairing due to notPairWith constraint"


def is_uniform(subjects: list[SubjectPlan]) -> bool:
    """True, wenn Modus A anwendbar ist."""
    if len(subjects) < 2 or len(subjects) % 2:
        return False
    total = sum(s.total for s in subjects)
    first = subjects[0].total
    return total == MIN_TOTAL_PACES and all(s.total == first for s in subjects)


def build_pairs(subjects: list[SubjectPlan]) -> list[tuple[SubjectPlan, SubjectPlan]]:
    """Schwerstes mit leichtestem Fach paaren (stabile Sortierung)."""
    ordered = sorted(subjects, key=lambda s: -s.difficulty)
    pairs = []
    while len(ordered) > 1:
        high = ordered.pop(0)
        low = ordered.pop()
        if high.conflicts_with(low.category_id, low.not_pair_with):
            raise ConstraintViolationError(PAIRING_ERROR)
        logger.debug(
            f"Paar: {high.subject_id} ({high.difficulty}) + "
            f"{low.subject_id} ({low.difficulty})"
        )
        pairs.append((high, low))
    return pairs


def place_uniform(subjects: list[SubjectPlan], lattice: WeekLattice) -> None:
    """Alle Paces paarweise im rotierenden Wochen-Cursor platzieren."""
    pairs = build_pairs(subjects)
    pace_count = subjects[0].total
    cursor = 0

    for i in range(pace_count):
        for a, b in pairs:
            index = cursor % TOTAL_WEEKS
            cursor += 1
            lattice.place(index, a, a.paces[i])
            lattice.place(index, b, b.paces[i])

    logger.info(f"Modus A: {len(pairs)} Paare, {pace_count} Paces je Fach platziert")
