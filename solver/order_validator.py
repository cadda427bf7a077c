"""Reihenfolge-Regel: innerhalb einer Kategorie steigt der Katalog-Index nie rückwärts.

Positionen sind vergleichbare Tupel ``(quartal_index, woche)``. Eine neue
Pace mit Index n an Position T ist unzulässig, wenn

  - eine Pace mit höherem Index an einer Position ≤ T liegt,
  - eine Pace mit niedrigerem Index an einer Position > T liegt, oder
  - eine Pace mit anderem Index genau auf T liegt.
"""

from typing import Iterable, Optional

Position = tuple[int, int]


def find_order_conflict(
    placed: Iterable[tuple[int, Position]],
    order_index: int,
    target: Position,
) -> Optional[tuple[int, Position]]:
    """Erste (Index, Position), die der Platzierung widerspricht, sonst None."""
    for other_order, pos in placed:
        if other_order > order_index and pos <= target:
            return (other_order, pos)
        if other_order < order_index and pos > target:
            return (other_order, pos)
        if other_order != order_index and pos == target:
            return (other_order, pos)
    return None


def is_order_valid(
    placed: Iterable[tuple[int, Position]],
    order_index: int,
    target: Position,
) -> bool:
    return find_order_conflict(placed, order_index, target) is None


def sequence_violations(
    placed: Iterable[tuple[int, Position]],
) -> list[tuple[tuple[int, Position], tuple[int, Position]]]:
    """Alle Paare (a, b) mit a.index < b.index, aber a nicht vor b."""
    ordered = sorted(placed, key=lambda item: (item[0], item[1]))
    violations = []
    for i, (lo_order, lo_pos) in enumerate(ordered):
        for hi_order, hi_pos in ordered[i + 1:]:
            if hi_order > lo_order and hi_pos <= lo_pos:
                violations.append(((lo_order, lo_pos), (hi_order, hi_pos)))
    return violations


def describe_position(pos: Position) -> str:
    return f"Q{pos[0] + 1} Woche {pos[1]}"
