"""Nachträglicher Ausgleich dichter und dünner Wochen (nur Modus B).

Pro Quartal wird wiederholt eine Pace aus der spätesten dichten Woche
(≥ 3 Paces) in die früheste dünne Woche (≤ 1 Pace) verschoben, sofern
Reihenfolge, Kapazität, Exklusivität und Paarung dabei gültig bleiben.
Jeder Zug senkt die Quadratsumme der Wochenlasten, der Ablauf endet also
an einem Fixpunkt. Quartalsgrenzen werden nie überschritten.
"""

import logging

from config.defaults import QUARTERS
from models.generated_pace import PairingRelaxation
from solver.lattice import WeekLattice
from solver.normalizer import SubjectPlan
from solver.order_validator import is_order_valid

logger = logging.getLogger(__name__)

SPARSE_MAX = 1
DENSE_MIN = 3


class WeekBalancer:
    """Verschiebt Paces innerhalb eines Quartals zur Lastglättung."""

    def __init__(self, lattice: WeekLattice, subjects: list[SubjectPlan]) -> None:
        self.lattice = lattice
        self.subjects = {s.tracking_id: s for s in subjects}

    def balance(self) -> int:
        """Alle Quartale ausgleichen. Gibt die Anzahl Verschiebungen zurück."""
        total = 0
        for quarter in range(QUARTERS):
            moves = self.balance_quarter(quarter)
            if moves:
                logger.debug(f"Q{quarter + 1}: {moves} Paces verschoben")
            total += moves
        return total

    def balance_quarter(self, quarter: int) -> int:
        moves = 0
        while self._move_one(quarter):
            moves += 1
        return moves

    def _move_one(self, quarter: int) -> bool:
        slots = self.lattice.quarter_slots(quarter)
        dense = [s for s in reversed(slots) if s.load >= DENSE_MIN]
        sparse = [s for s in slots if s.load <= SPARSE_MAX]

        for source in dense:
            for target in sparse:
                for pace in reversed(source.paces):
                    subject = self.subjects[pace.tracking_id]
                    if not self.lattice.can_place(target.index, subject):
                        continue
                    others = [
                        item for item in self.lattice.positions_of(pace.tracking_id)
                        if item[0] != pace.order_index
                    ]
                    if not is_order_valid(others, pace.order_index, target.position):
                        continue
                    self.lattice.remove(source.index, pace)
                    self.lattice.insert(target.index, pace)
                    logger.debug(
                        f"{pace.subject_id} Pace {pace.pace_code}: {source} → {target}"
                    )
                    return True
        return False


def sync_relaxations(
    lattice: WeekLattice,
    relaxations: list[PairingRelaxation],
) -> list[PairingRelaxation]:
    """Gelockerte Paarungen nach dem Ausgleich an die neuen Wochen anpassen.

    Eine verschobene Pace, deren neue Woche keinen Konflikt mehr hat, fällt
    aus der Liste heraus.
    """
    synced = []
    for r in relaxations:
        found = lattice.locate(r.subject_id, r.pace_code)
        if found is None:
            continue
        index, pace = found
        conflicts = lattice.partner_conflicts(index, pace)
        if not conflicts:
            continue
        slot = lattice.slots[index]
        synced.append(r.model_copy(update={
            "quarter": slot.quarter_index + 1,
            "week": slot.week,
            "conflicts_with": conflicts,
        }))
    return synced
