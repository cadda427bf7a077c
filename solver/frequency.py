"""Modus B: frequenzbasierte Rotation pro Quartal.

Jedes Fach bekommt pro Quartal ``total // 4`` Paces, die ersten
``total % 4`` Quartale eine mehr. Die k-te Zielwoche ist
``offset + k * frequenz`` (mit Umlauf) mit ``frequenz = round(9 / paces_im_quartal)``
(kaufmännisch gerundet). Fächer mit mehr als 3 Paces im Quartal werden
zuerst gesetzt, danach die mit 1–3 Paces; der Offset ist der Rang.

Zuerst werden nur die Wochen eines Fachs gewählt: Ist die Zielwoche belegt,
wird vorwärts (mit Umlauf) nach einer Woche mit Platz, ohne dasselbe Fach
und ohne not_pair_with-Konflikt gesucht; danach ein zweites Mal ohne
not_pair_with. Anschließend bekommen die gewählten Wochen aufsteigend die
Pace-Codes des Quartals, die Reihenfolge ist damit immer gewahrt. Findet
sich für eine Woche kein Platz, bleiben die höchsten Codes unplatziert.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from config.defaults import QUARTERS, WEEKS_PER_QUARTER
from models.generated_pace import PairingRelaxation, UnplacedPace
from solver.lattice import WeekLattice
from solver.normalizer import SubjectPlan

logger = logging.getLogger(__name__)

# Ab dieser Anzahl Paces im Quartal wird ein Fach in der ersten Runde gesetzt
DENSE_SUBJECT_THRESHOLD = 3


@dataclass
class FrequencyOutcome:
    """Diagnose eines Modus-B-Laufs."""

    unplaced: list[UnplacedPace] = field(default_factory=list)
    relaxations: list[PairingRelaxation] = field(default_factory=list)


def split_by_quarter(total: int, quarters: int = QUARTERS) -> list[int]:
    """Paces eines Fachs auf die Quartale verteilen (Rest auf die ersten)."""
    return [total // quarters + (1 if q < total % quarters else 0) for q in range(quarters)]


def target_frequency(paces_in_quarter: int) -> int:
    """round(9 / n) mit Rundung .5 → aufwärts; 0 bei n = 0."""
    if paces_in_quarter <= 0:
        return 0
    return math.floor(WEEKS_PER_QUARTER / paces_in_quarter + 0.5)


def quarter_ranking(
    subjects: list[SubjectPlan],
    distribution: dict[str, list[int]],
    quarter: int,
) -> list[SubjectPlan]:
    """Reihenfolge der Fächer in einem Quartal: erst >3 Paces, dann 1–3."""
    def sort_key(s: SubjectPlan):
        return (-distribution[s.tracking_id][quarter], -s.total, s.input_order)

    active = [s for s in subjects if distribution[s.tracking_id][quarter] > 0]
    dense = sorted(
        (s for s in active if distribution[s.tracking_id][quarter] > DENSE_SUBJECT_THRESHOLD),
        key=sort_key,
    )
    light = sorted(
        (s for s in active if distribution[s.tracking_id][quarter] <= DENSE_SUBJECT_THRESHOLD),
        key=sort_key,
    )
    return dense + light


def _scan(
    lattice: WeekLattice,
    quarter: int,
    start_week: int,
    subject: SubjectPlan,
    taken: set[int],
    ignore_pairing: bool,
) -> Optional[int]:
    """Ab start_week vorwärts (mit Umlauf) die erste freie Woche suchen."""
    for step in range(WEEKS_PER_QUARTER):
        week_idx = (start_week + step) % WEEKS_PER_QUARTER
        index = lattice.slot_index(quarter, week_idx)
        if index in taken:
            continue
        if lattice.can_place(index, subject, ignore_pairing=ignore_pairing):
            return index
    return None


def pick_weeks(
    lattice: WeekLattice,
    quarter: int,
    subject: SubjectPlan,
    count: int,
    offset: int,
) -> tuple[list[int], set[int]]:
    """Wochen eines Fachs im Quartal wählen (noch ohne Pace-Codes).

    Returns:
        Gewählte Slot-Indizes (aufsteigend) und die Teilmenge, die nur mit
        gelockerter Paarung gefunden wurde.
    """
    freq = target_frequency(count)
    taken: set[int] = set()
    relaxed: set[int] = set()

    for k in range(count):
        target = (offset + k * freq) % WEEKS_PER_QUARTER
        index = _scan(lattice, quarter, target, subject, taken, ignore_pairing=False)
        if index is None:
            index = _scan(lattice, quarter, target, subject, taken, ignore_pairing=True)
            if index is None:
                break
            relaxed.add(index)
        taken.add(index)

    return sorted(taken), relaxed


def place_by_frequency(subjects: list[SubjectPlan], lattice: WeekLattice) -> FrequencyOutcome:
    """Alle Fächer Quartal für Quartal platzieren."""
    outcome = FrequencyOutcome()
    distribution = {s.tracking_id: split_by_quarter(s.total) for s in subjects}
    cursors = {s.tracking_id: 0 for s in subjects}

    for s in subjects:
        logger.debug(f"Verteilung {s.subject_id}: {distribution[s.tracking_id]}")

    for quarter in range(QUARTERS):
        ranking = quarter_ranking(subjects, distribution, quarter)

        for offset, subject in enumerate(ranking):
            count = distribution[subject.tracking_id][quarter]
            start = cursors[subject.tracking_id]
            codes = subject.paces[start:start + count]
            cursors[subject.tracking_id] += count

            weeks, relaxed = pick_weeks(lattice, quarter, subject, count, offset)

            # Codes in Wochenreihenfolge vergeben
            for index, pace_code in zip(weeks, codes):
                if index in relaxed:
                    conflicts = lattice.pairing_conflicts(index, subject)
                    slot = lattice.slots[index]
                    outcome.relaxations.append(PairingRelaxation(
                        category_id=subject.category_id,
                        subject_id=subject.subject_id,
                        pace_code=pace_code,
                        quarter=quarter + 1,
                        week=slot.week,
                        conflicts_with=conflicts,
                    ))
                    logger.warning(
                        f"Q{quarter + 1}: {subject.subject_id} Pace {pace_code} nur mit "
                        f"gelockerter Paarung platziert (Woche {slot.week}, "
                        f"Konflikt mit {', '.join(conflicts)})"
                    )
                lattice.place(index, subject, pace_code)

            reason = f"Kein zulässiger Slot in Q{quarter + 1}"
            for pace_code in codes[len(weeks):]:
                outcome.unplaced.append(UnplacedPace(
                    category_id=subject.category_id,
                    subject_id=subject.subject_id,
                    pace_code=pace_code,
                    quarter=quarter + 1,
                    reason=reason,
                ))
                logger.warning(f"{subject.subject_id} Pace {pace_code}: {reason}")

    return outcome
