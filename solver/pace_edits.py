"""Einzelbearbeitung einer Projektion: Pace hinzufügen, verschieben, entfernen."""

import logging
from datetime import datetime
from typing import Optional

from config.defaults import WEEKS_PER_QUARTER, quarter_index
from data.store import InMemoryProjectionStore
from models.projection_pace import PaceCatalogEntry, Projection, ProjectionPace
from solver.errors import (
    DuplicatePaceError,
    InvalidPositionError,
    OrderViolationError,
    PaceNotFoundError,
    ProjectionNotEditableError,
)
from solver.order_validator import describe_position, find_order_conflict

logger = logging.getLogger(__name__)


class PaceEditor:
    def __init__(self, store: InMemoryProjectionStore) -> None:
        self.store = store

    # ─── Öffentliche Operationen ───

    def add_pace(
        self,
        projection_id: str,
        pace_catalog_id: str,
        quarter: str,
        week: int,
    ) -> ProjectionPace:
        projection = self._editable_projection(projection_id)
        entry = self.store.catalog_entry(pace_catalog_id)
        if entry is None:
            raise PaceNotFoundError(f"Katalogeintrag {pace_catalog_id} nicht gefunden")

        existing = self.store.paces_for_projection(projection.id)
        if any(p.pace_catalog_id == pace_catalog_id for p in existing):
            raise DuplicatePaceError(
                f"Pace {entry.code} ({entry.subject_name}) ist bereits in der Projektion"
            )

        self._check_order(entry, existing, quarter, week, exclude_id=None)
        with self.store.transaction():
            pace = self.store.add_pace(projection.id, entry.id, quarter, week)
        logger.info(f"Projektion {projection.id}: Pace {entry.code} → {pace.quarter}/W{week}")
        return pace

    def move_pace(
        self,
        projection_id: str,
        pace_id: str,
        quarter: str,
        week: int,
    ) -> ProjectionPace:
        projection = self._editable_projection(projection_id)
        existing = self.store.paces_for_projection(projection.id)
        pace = next((p for p in existing if p.id == pace_id), None)
        if pace is None:
            raise PaceNotFoundError(f"Pace {pace_id} nicht in Projektion {projection_id}")
        entry = self.store.catalog_entry(pace.pace_catalog_id)
        if entry is None:
            raise PaceNotFoundError(f"Katalogeintrag {pace.pace_catalog_id} nicht gefunden")

        self._check_order(entry, existing, quarter, week, exclude_id=pace_id)
        with self.store.transaction():
            moved = self.store.move_pace(pace_id, self._normalize(quarter), week)
        logger.info(f"Projektion {projection.id}: Pace {entry.code} → {moved.quarter}/W{week}")
        return moved

    def remove_pace(
        self,
        projection_id: str,
        pace_id: str,
        now: Optional[datetime] = None,
    ) -> ProjectionPace:
        """Soft-Delete; die Zeile bleibt erhalten."""
        projection = self._editable_projection(projection_id)
        pace = next(
            (p for p in self.store.paces_for_projection(projection.id) if p.id == pace_id),
            None,
        )
        if pace is None:
            raise PaceNotFoundError(f"Pace {pace_id} nicht in Projektion {projection_id}")
        with self.store.transaction():
            return self.store.soft_delete_pace(pace_id, now=now)

    # ─── Prüfungen ───

    def _editable_projection(self, projection_id: str) -> Projection:
        projection = self.store.get_projection(projection_id)
        if projection is None:
            raise ProjectionNotEditableError(f"Projektion {projection_id} nicht gefunden")
        if not projection.is_open:
            raise ProjectionNotEditableError(
                f"Projektion {projection_id} ist geschlossen und kann nicht bearbeitet werden"
            )
        return projection

    @staticmethod
    def _normalize(quarter: str) -> str:
        quarter = quarter.strip().upper()
        return quarter if quarter.startswith("Q") else f"Q{quarter}"

    def _check_order(
        self,
        entry: PaceCatalogEntry,
        existing: list[ProjectionPace],
        quarter: str,
        week: int,
        exclude_id: Optional[str],
    ) -> None:
        if not 1 <= week <= WEEKS_PER_QUARTER:
            raise InvalidPositionError(f"Woche {week} außerhalb 1..{WEEKS_PER_QUARTER}")
        try:
            target = (quarter_index(self._normalize(quarter)), week)
        except ValueError:
            raise InvalidPositionError(f"Unbekanntes Quartal {quarter!r}") from None

        # Wahlfächer haben keine feste Reihenfolge
        if entry.is_elective:
            return

        placed = []
        for p in existing:
            if p.id == exclude_id:
                continue
            other = self.store.catalog_entry(p.pace_catalog_id)
            if other is None or other.category_key != entry.category_key:
                continue
            placed.append((other.order_index, (quarter_index(p.quarter), p.week)))

        conflict = find_order_conflict(placed, entry.order_index, target)
        if conflict is not None:
            other_order, pos = conflict
            raise OrderViolationError(
                f"Pace mit Index {entry.order_index} kann nicht nach "
                f"{describe_position(target)} – kollidiert mit Index {other_order} "
                f"({describe_position(pos)})"
            )
