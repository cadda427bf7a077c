"""Wochenraster: 36 feste Wochen-Slots, gruppiert in 4 Quartale à 9 Wochen."""

import logging
from typing import Optional

from config.defaults import MAX_SUBJECTS_PER_WEEK, QUARTERS, WEEKS_PER_QUARTER
from models.generated_pace import GeneratedPace
from models.week_slot import PlacedPace, WeekSlot
from solver.normalizer import SubjectPlan
from solver.order_validator import Position

logger = logging.getLogger(__name__)


class WeekLattice:
    """Belegung aller Wochen eines Schuljahres."""

    def __init__(self, max_subjects_per_week: int = MAX_SUBJECTS_PER_WEEK) -> None:
        self.max_subjects_per_week = max_subjects_per_week
        self.slots: list[WeekSlot] = [
            WeekSlot(index=i) for i in range(QUARTERS * WEEKS_PER_QUARTER)
        ]

    # ─── Zugriff ───

    @staticmethod
    def slot_index(quarter_idx: int, week_idx: int) -> int:
        """(0-basiertes Quartal, 0-basierte Woche) → globaler Index."""
        return quarter_idx * WEEKS_PER_QUARTER + week_idx

    def quarter_slots(self, quarter_idx: int) -> list[WeekSlot]:
        start = quarter_idx * WEEKS_PER_QUARTER
        return self.slots[start:start + WEEKS_PER_QUARTER]

    def positions_of(self, tracking_id: str) -> list[tuple[int, Position]]:
        """(Katalog-Index, Position) aller Paces eines Tracking-Schlüssels."""
        return [
            (p.order_index, slot.position)
            for slot in self.slots
            for p in slot.paces
            if p.tracking_id == tracking_id
        ]

    # ─── Prüfungen ───

    def pairing_conflicts(self, index: int, subject: SubjectPlan) -> list[str]:
        """Kategorien der Wochenbelegung, mit denen das Fach nicht zusammen darf."""
        return [
            p.category_id
            for p in self.slots[index].paces
            if subject.conflicts_with(p.category_id, p.not_pair_with)
        ]

    def can_place(
        self,
        index: int,
        subject: SubjectPlan,
        ignore_pairing: bool = False,
    ) -> bool:
        """Kapazität, Exklusivität und (optional) Paarung prüfen."""
        slot = self.slots[index]
        if slot.load >= self.max_subjects_per_week:
            return False
        if subject.tracking_id in slot.tracking_ids:
            return False
        if not ignore_pairing and self.pairing_conflicts(index, subject):
            return False
        return True

    def locate(self, subject_id: str, pace_code: str) -> Optional[tuple[int, PlacedPace]]:
        """(Slot-Index, Pace) einer platzierten Pace, sonst None."""
        for slot in self.slots:
            for p in slot.paces:
                if p.subject_id == subject_id and p.pace_code == pace_code:
                    return slot.index, p
        return None

    def partner_conflicts(self, index: int, pace: PlacedPace) -> list[str]:
        """Wie pairing_conflicts, aber für eine bereits platzierte Pace."""
        return [
            p.category_id
            for p in self.slots[index].paces
            if p is not pace
            and (p.category_id in pace.not_pair_with or pace.category_id in p.not_pair_with)
        ]

    # ─── Belegung ───

    def place(self, index: int, subject: SubjectPlan, pace_code: str) -> PlacedPace:
        slot = self.slots[index]
        if slot.load >= self.max_subjects_per_week:
            raise ValueError(f"{slot}: Kapazität ({self.max_subjects_per_week}) erschöpft")
        placed = PlacedPace(
            tracking_id=subject.tracking_id,
            category_id=subject.category_id,
            subject_id=subject.subject_id,
            pace_code=pace_code,
            not_pair_with=subject.not_pair_with,
        )
        slot.paces.append(placed)
        return placed

    def remove(self, index: int, pace: PlacedPace) -> None:
        self.slots[index].paces.remove(pace)

    def insert(self, index: int, pace: PlacedPace) -> None:
        """Bereits erzeugte Pace (z.B. beim Verschieben) einfügen."""
        slot = self.slots[index]
        if slot.load >= self.max_subjects_per_week:
            raise ValueError(f"{slot}: Kapazität ({self.max_subjects_per_week}) erschöpft")
        slot.paces.append(pace)

    # ─── Export ───

    def to_generated(self) -> list[GeneratedPace]:
        """Alle Paces, sortiert nach Quartal, Fach und numerischem Code."""
        result = [
            GeneratedPace(
                category_id=p.category_id,
                subject_id=p.subject_id,
                pace_code=p.pace_code,
                quarter=slot.quarter_index + 1,
                week=slot.week,
            )
            for slot in self.slots
            for p in slot.paces
        ]
        result.sort(key=lambda g: (g.quarter, g.subject_id, g.order_index))
        return result

    def total_placed(self) -> int:
        return sum(slot.load for slot in self.slots)
