"""Normalisierung der Generierungsanfrage.

Jedes angeforderte Fach wird zu einem ``SubjectPlan``: geordnete Liste der
Pace-Codes, Schwierigkeit mit Standardwert und der Tracking-Schlüssel, unter
dem das Fach im Wochenraster geführt wird.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from config.defaults import DEFAULT_DIFFICULTY
from models.pace_set import PaceSetRequest, ProjectionRequest

logger = logging.getLogger(__name__)


@dataclass
class SubjectPlan:
    """Normalisiertes Fach für die Platzierung."""

    category_id: str
    subject_id: str
    # Kategorie, oder Fach-ID wenn sich mehrere Fächer eine Kategorie teilen (Wahlfächer)
    tracking_id: str
    difficulty: int
    not_pair_with: frozenset[str]
    paces: list[str] = field(default_factory=list)
    # Position in der Anfrage (stabiler Tie-Break)
    input_order: int = 0

    @property
    def total(self) -> int:
        return len(self.paces)

    def conflicts_with(self, category_id: str, other_not_pair_with: frozenset[str]) -> bool:
        """Paarungskonflikt in beide Richtungen."""
        return category_id in self.not_pair_with or self.category_id in other_not_pair_with


def expand_pace_codes(request: PaceSetRequest) -> list[str]:
    """start..end ohne ausgelassene Paces, aufsteigend. Leer ist gültig."""
    skipped = set(request.skip_paces)
    return [
        str(n)
        for n in range(request.start_pace, request.end_pace + 1)
        if n not in skipped
    ]


def normalize_request(
    request: ProjectionRequest,
    default_difficulty: int = DEFAULT_DIFFICULTY,
) -> list[SubjectPlan]:
    """Alle Fächer der Anfrage in Eingabereihenfolge normalisieren."""
    per_category = Counter(s.category_id for s in request.subjects)
    plans: list[SubjectPlan] = []

    for i, s in enumerate(request.subjects):
        is_elective = per_category[s.category_id] > 1
        plan = SubjectPlan(
            category_id=s.category_id,
            subject_id=s.subject_id,
            tracking_id=s.subject_id if is_elective else s.category_id,
            difficulty=s.difficulty if s.difficulty is not None else default_difficulty,
            not_pair_with=frozenset(s.not_pair_with),
            paces=expand_pace_codes(s),
            input_order=i,
        )
        logger.debug(
            f"Fach {plan.subject_id}: {plan.total} Paces, "
            f"Schwierigkeit {plan.difficulty}, Tracking '{plan.tracking_id}'"
        )
        plans.append(plan)

    return plans
