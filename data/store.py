"""Persistenz-Schnittstellen und In-Memory-Store für Projektionen.

Die Engine spricht nur mit den Protokollen ``QuarterRepository`` und
``ProjectionRepository``. ``InMemoryProjectionStore`` implementiert beide
und kann seinen Zustand als JSON speichern und laden.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from itertools import count
from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol

from pydantic import BaseModel

from config.defaults import QUARTER_NAMES
from models.generated_pace import GenerationResult
from models.projection_pace import (
    PaceCatalogEntry,
    PaceStatus,
    Projection,
    ProjectionPace,
)
from models.quarter import Quarter, SchoolYear
from solver.errors import CatalogLookupError

logger = logging.getLogger(__name__)


# ─── Protokolle ───────────────────────────────────────────────────────────────

class QuarterRepository(Protocol):
    def get_quarter(self, quarter_id: str) -> Optional[Quarter]: ...

    def find_quarter(self, school_year_id: str, name: str) -> Optional[Quarter]: ...

    def get_school_year(self, school_year_id: str) -> Optional[SchoolYear]: ...

    def save_quarter(self, quarter: Quarter) -> None: ...


class ProjectionRepository(Protocol):
    def open_projections(self, school_id: str, school_year_id: str) -> list[Projection]: ...

    def get_projection(self, projection_id: str) -> Optional[Projection]: ...

    def paces_for_projection(self, projection_id: str) -> list[ProjectionPace]: ...

    def catalog_entry(self, pace_catalog_id: str) -> Optional[PaceCatalogEntry]: ...

    def update_pace(
        self,
        pace_id: str,
        quarter: str,
        week: int,
        status: PaceStatus,
        original_quarter: Optional[str],
        original_week: Optional[int],
    ) -> ProjectionPace: ...

    def transaction(self): ...


# ─── Katalog ──────────────────────────────────────────────────────────────────

class PaceCatalog:
    """Nachschlagen von Katalogeinträgen per ID oder (Kategorie, Code)."""

    def __init__(self, entries: list[PaceCatalogEntry]) -> None:
        self._by_id = {e.id: e for e in entries}
        self._by_key: dict[tuple[str, str], list[PaceCatalogEntry]] = {}
        for e in entries:
            self._by_key.setdefault((e.category_id, e.code), []).append(e)

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, pace_catalog_id: str) -> Optional[PaceCatalogEntry]:
        return self._by_id.get(pace_catalog_id)

    def lookup(
        self,
        category_id: str,
        code: str,
        subject_id: Optional[str] = None,
    ) -> Optional[PaceCatalogEntry]:
        """(Kategorie, Code) → Eintrag. Bei Wahlfächern entscheidet subject_id."""
        candidates = self._by_key.get((category_id, code), [])
        if len(candidates) > 1 and subject_id is not None:
            candidates = [e for e in candidates if e.subject_id == subject_id]
        return candidates[0] if candidates else None


# ─── Store-Zustand ────────────────────────────────────────────────────────────

class ProjectionStoreData(BaseModel):
    """Serialisierbarer Gesamtzustand des Stores."""

    school_years: list[SchoolYear] = []
    quarters: list[Quarter] = []
    projections: list[Projection] = []
    paces: list[ProjectionPace] = []
    catalog: list[PaceCatalogEntry] = []
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"


class InMemoryProjectionStore:
    """Einfacher Store für CLI und Tests; Transaktionen per Undo-Journal."""

    def __init__(self, data: Optional[ProjectionStoreData] = None) -> None:
        self.data = data or ProjectionStoreData()
        self._ids = count(len(self.data.paces) + 1)
        # None = keine offene Transaktion
        self._undo: Optional[list[Callable[[], None]]] = None

    # ─── Transaktion ───

    @contextmanager
    def transaction(self) -> Iterator["InMemoryProjectionStore"]:
        """Alles oder nichts: bei einer Exception werden die Änderungen rückgängig gemacht.

        Jede schreibende Methode legt im Journal nur fest, wie sie ihre eigene
        Zeile wiederherstellt; der übrige Zustand wird nicht kopiert.
        Verschachtelte Aufrufe laufen in der äußeren Transaktion mit.
        """
        if self._undo is not None:
            yield self
            return
        self._undo = []
        try:
            yield self
        except Exception:
            for undo in reversed(self._undo):
                undo()
            logger.debug(f"Transaktion zurückgerollt ({len(self._undo)} Änderungen)")
            raise
        finally:
            self._undo = None

    def _journal(self, undo: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(undo)

    def _append(self, rows: list, *items) -> None:
        size = len(rows)
        rows.extend(items)
        self._journal(lambda: rows.__delitem__(slice(size, None)))

    def _set_row(self, rows: list, index: int, row) -> None:
        old = rows[index]
        rows[index] = row
        self._journal(lambda: rows.__setitem__(index, old))

    # ─── Stammdaten ───

    def add_school_year(self, school_year: SchoolYear) -> None:
        self._append(self.data.school_years, school_year)

    def add_quarter(self, quarter: Quarter) -> None:
        self._append(self.data.quarters, quarter)

    def add_projection(self, projection: Projection) -> None:
        self._append(self.data.projections, projection)

    def add_catalog_entries(self, entries: list[PaceCatalogEntry]) -> None:
        self._append(self.data.catalog, *entries)

    @property
    def catalog(self) -> PaceCatalog:
        return PaceCatalog(self.data.catalog)

    def catalog_entry(self, pace_catalog_id: str) -> Optional[PaceCatalogEntry]:
        return next((e for e in self.data.catalog if e.id == pace_catalog_id), None)

    # ─── Quartale ───

    def get_quarter(self, quarter_id: str) -> Optional[Quarter]:
        return next((q for q in self.data.quarters if q.id == quarter_id), None)

    def find_quarter(self, school_year_id: str, name: str) -> Optional[Quarter]:
        return next(
            (q for q in self.data.quarters
             if q.school_year_id == school_year_id and q.name == name),
            None,
        )

    def all_quarters(self) -> list[Quarter]:
        return sorted(self.data.quarters, key=lambda q: (q.school_year_id, q.order))

    def get_school_year(self, school_year_id: str) -> Optional[SchoolYear]:
        return next((y for y in self.data.school_years if y.id == school_year_id), None)

    def save_quarter(self, quarter: Quarter) -> None:
        for i, q in enumerate(self.data.quarters):
            if q.id == quarter.id:
                self._set_row(self.data.quarters, i, quarter)
                return
        self._append(self.data.quarters, quarter)

    # ─── Projektionen ───

    def get_projection(self, projection_id: str) -> Optional[Projection]:
        return next((p for p in self.data.projections if p.id == projection_id), None)

    def open_projections(self, school_id: str, school_year_id: str) -> list[Projection]:
        return [
            p for p in self.data.projections
            if p.school_id == school_id
            and p.school_year_id == school_year_id
            and p.is_open
        ]

    def paces_for_projection(
        self,
        projection_id: str,
        include_deleted: bool = False,
    ) -> list[ProjectionPace]:
        return [
            p for p in self.data.paces
            if p.projection_id == projection_id and (include_deleted or not p.is_deleted)
        ]

    def get_pace(self, pace_id: str) -> Optional[ProjectionPace]:
        return next((p for p in self.data.paces if p.id == pace_id), None)

    def add_pace(
        self,
        projection_id: str,
        pace_catalog_id: str,
        quarter: str,
        week: int,
    ) -> ProjectionPace:
        pace = ProjectionPace(
            id=f"pp{next(self._ids)}",
            projection_id=projection_id,
            pace_catalog_id=pace_catalog_id,
            quarter=quarter,
            week=week,
        )
        self._append(self.data.paces, pace)
        return pace

    def _replace_pace(self, pace_id: str, **changes) -> ProjectionPace:
        for i, p in enumerate(self.data.paces):
            if p.id == pace_id:
                updated = p.model_copy(update=changes)
                self._set_row(self.data.paces, i, updated)
                return updated
        raise KeyError(f"Pace {pace_id} nicht gefunden")

    def update_pace(
        self,
        pace_id: str,
        quarter: str,
        week: int,
        status: PaceStatus,
        original_quarter: Optional[str],
        original_week: Optional[int],
    ) -> ProjectionPace:
        return self._replace_pace(
            pace_id,
            quarter=quarter,
            week=week,
            status=status,
            original_quarter=original_quarter,
            original_week=original_week,
        )

    def move_pace(self, pace_id: str, quarter: str, week: int) -> ProjectionPace:
        return self._replace_pace(pace_id, quarter=quarter, week=week)

    def soft_delete_pace(self, pace_id: str, now: Optional[datetime] = None) -> ProjectionPace:
        return self._replace_pace(pace_id, deleted_at=now or datetime.now(timezone.utc))

    def set_grade(self, pace_id: str, grade: Optional[float]) -> ProjectionPace:
        return self._replace_pace(pace_id, grade=grade)

    # ─── Persistenz ───

    def save_json(self, path: Path) -> None:
        """Speichert den Store als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        stamped = self.data.model_copy(update={"modified_at": datetime.now(timezone.utc)})
        with open(path, "w", encoding="utf-8") as f:
            f.write(stamped.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "InMemoryProjectionStore":
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        return cls(ProjectionStoreData.model_validate(raw))


# ─── Generierte Projektion übernehmen ─────────────────────────────────────────

def persist_generated(
    store: InMemoryProjectionStore,
    projection: Projection,
    result: GenerationResult,
    catalog: PaceCatalog,
) -> list[ProjectionPace]:
    """Generierte Paces als PENDING-Zeilen anlegen.

    Alle (Kategorie, Code)-Paare werden zuerst aufgelöst; ist eines
    unbekannt, wird nichts geschrieben.
    """
    resolved = []
    for gp in result.paces:
        entry = catalog.lookup(gp.category_id, gp.pace_code, subject_id=gp.subject_id)
        if entry is None:
            raise CatalogLookupError(
                f"Pace {gp.pace_code} der Kategorie {gp.category_id} nicht im Katalog"
            )
        resolved.append((entry, gp))

    created = []
    with store.transaction():
        if store.get_projection(projection.id) is None:
            store.add_projection(projection)
        for entry, gp in resolved:
            created.append(store.add_pace(
                projection.id, entry.id, QUARTER_NAMES[gp.quarter - 1], gp.week,
            ))

    logger.info(f"Projektion {projection.id}: {len(created)} Paces gespeichert")
    return created
