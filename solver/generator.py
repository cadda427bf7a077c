"""Projektions-Generator: ordnet jeder angeforderten Pace eine Woche zu.

Ablauf:
  1. Normalisierung (Pace-Codes, Schwierigkeit, Tracking-Schlüssel)
  2. Prüfung der Mengen (≥ 72 gesamt, ≤ 36 je Fach)
  3. Platzierung im 36-Wochen-Raster – Modus A oder Modus B
  4. Ausgleich dichter/dünner Wochen (nur Modus B)

Der Lauf ist rein und deterministisch: gleiche Anfrage, gleiches Ergebnis.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from config.schema import OverflowPolicy, ProjectionConfig
from models.generated_pace import GeneratedPace, GenerationMode, GenerationResult
from models.pace_set import ProjectionRequest
from solver.balancer import WeekBalancer, sync_relaxations
from solver.errors import PlacementOverflowError, ValidationError
from solver.frequency import place_by_frequency
from solver.lattice import WeekLattice
from solver.normalizer import SubjectPlan, normalize_request
from solver.uniform_pairing import is_uniform, place_uniform

logger = logging.getLogger(__name__)


class ProjectionGenerator:
    """Erzeugt eine Jahresprojektion aus einer ProjectionRequest."""

    def __init__(self, config: Optional[ProjectionConfig] = None) -> None:
        if config is None:
            from config.defaults import default_projection_config
            config = default_projection_config()
        self.config = config

    def run(self, request: ProjectionRequest) -> GenerationResult:
        gen = self.config.generation
        subjects = normalize_request(request, default_difficulty=gen.default_difficulty)
        total = self._check_quantities(subjects)

        lattice = WeekLattice(max_subjects_per_week=gen.max_subjects_per_week)

        if is_uniform(subjects):
            mode = GenerationMode.UNIFORM_PAIRING
            logger.info(f"Modus A: {len(subjects)} Fächer × {subjects[0].total} Paces")
            place_uniform(subjects, lattice)
            unplaced, relaxations = [], []
        else:
            mode = GenerationMode.FREQUENCY_ROUND_ROBIN
            logger.info(f"Modus B: {len(subjects)} Fächer, {total} Paces")
            outcome = place_by_frequency(subjects, lattice)
            unplaced, relaxations = outcome.unplaced, outcome.relaxations

            if unplaced and gen.overflow_policy == OverflowPolicy.RAISE:
                codes = ", ".join(f"{u.subject_id}:{u.pace_code}" for u in unplaced)
                raise PlacementOverflowError(
                    f"{len(unplaced)} Paces nicht platzierbar: {codes}"
                )

            if gen.balance_weeks:
                moves = WeekBalancer(lattice, subjects).balance()
                logger.info(f"Ausgleich: {moves} Verschiebungen")
                relaxations = sync_relaxations(lattice, relaxations)

        paces = lattice.to_generated()
        logger.info(
            f"Projektion erzeugt: {lattice.total_placed()}/{total} Paces platziert"
            + (f", {len(unplaced)} offen" if unplaced else "")
        )
        return GenerationResult(
            mode=mode,
            paces=paces,
            unplaced=unplaced,
            relaxations=relaxations,
            requested_total=total,
            student_id=request.student_id,
            created_at=datetime.now(timezone.utc),
        )

    def _check_quantities(self, subjects: list[SubjectPlan]) -> int:
        gen = self.config.generation
        for s in subjects:
            if s.total > gen.max_paces_per_subject:
                raise ValidationError(
                    f"Fach {s.subject_id} hat {s.total} Paces, "
                    f"maximal {gen.max_paces_per_subject} erlaubt"
                )
        total = sum(s.total for s in subjects)
        if total < gen.min_total_paces:
            raise ValidationError(
                f"Projektion muss mindestens {gen.min_total_paces} Paces enthalten "
                f"(angefragt: {total})"
            )
        return total


def generate(
    request: ProjectionRequest,
    config: Optional[ProjectionConfig] = None,
) -> list[GeneratedPace]:
    """Kurzform: nur die platzierten Paces."""
    return ProjectionGenerator(config).run(request).paces
