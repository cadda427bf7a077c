"""Umverteilung unbenoteter Paces beim Quartalsabschluss.

Für jede offene Projektion der Schule werden die Paces des geschlossenen
Quartals ohne Note (aufsteigend nach Katalog-Index) ins Folgequartal
verschoben. Pro Kategorie gilt Wochen-Exklusivität und die Reihenfolge-Regel
über alle Paces der Kategorie in den Quartalen nach dem geschlossenen.

Platzierungsleiter im Zielquartal:
  1. Woche des direkten Nachfolgers, sonst die nächste freie Woche davor
  2. Nachfolger samt anschließendem Block eine Woche nach hinten schieben
  3. erste freie Woche, die die Reihenfolge hält
  4. ist das Quartal voll: höchste Pace der letzten belegten Woche ins
     nächste Quartal verdrängen (kaskadierend) und erneut versuchen

Scheitert alles, bleibt die Pace als UNFINISHED an ihrem Platz und wird als
Überlauf gemeldet.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from config.defaults import QUARTER_NAMES
from config.schema import ProjectionConfig
from data.store import ProjectionRepository, QuarterRepository
from models.projection_pace import PaceCatalogEntry, PaceStatus, Projection
from models.quarter import Quarter
from solver.errors import QuarterNotClosedError, QuarterNotFoundError
from solver.order_validator import is_order_valid

logger = logging.getLogger(__name__)


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class OverflowPace(BaseModel):
    """Pace, die nicht umverteilt werden konnte."""

    projection_id: str
    pace_catalog_id: str
    pace_code: str
    subject_name: str
    reason: str


class RedistributionResult(BaseModel):
    redistributed_count: int = 0
    overflow_paces: list[OverflowPace] = []

    def print_rich(self) -> None:
        """Gibt das Ergebnis formatiert über Rich aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        console.print(
            f"[green]✓[/green] {self.redistributed_count} Paces umverteilt"
        )
        if not self.overflow_paces:
            return
        table = Table(title="Überlauf", box=box.SIMPLE, header_style="bold yellow")
        table.add_column("Projektion")
        table.add_column("Fach")
        table.add_column("Pace", justify="right")
        table.add_column("Grund")
        for o in self.overflow_paces:
            table.add_row(o.projection_id, o.subject_name, o.pace_code, o.reason)
        console.print(table)


# ─── Arena ────────────────────────────────────────────────────────────────────

@dataclass
class _ArenaPace:
    """Arbeitskopie einer Pace-Zeile während der Umverteilung."""

    pace_id: str
    catalog: PaceCatalogEntry
    # None = gerade aus dem Raster genommen (wartet auf Platzierung)
    quarter_idx: Optional[int]
    week: int
    graded: bool
    status: PaceStatus
    original_quarter: Optional[str]
    original_week: Optional[int]

    @property
    def order_index(self) -> int:
        return self.catalog.order_index

    @property
    def key(self) -> str:
        return self.catalog.category_key

    @property
    def position(self) -> tuple[int, int]:
        return (self.quarter_idx, self.week)


class _PlacementFailed(Exception):
    """Interner Abbruch der Platzierungsleiter mit Begründung."""


# ─── Redistributor ────────────────────────────────────────────────────────────

class QuarterRedistributor:
    """Verteilt unfertige Paces eines geschlossenen Quartals nach vorn."""

    def __init__(
        self,
        quarters: QuarterRepository,
        projections: ProjectionRepository,
        config: Optional[ProjectionConfig] = None,
    ) -> None:
        if config is None:
            from config.defaults import default_projection_config
            config = default_projection_config()
        self.quarters = quarters
        self.projections = projections
        self.config = config
        self.names = list(QUARTER_NAMES)

    def redistribute(self, closed_quarter_id: str, school_id: str) -> RedistributionResult:
        closed = self.quarters.get_quarter(closed_quarter_id)
        if closed is None:
            raise QuarterNotFoundError(f"Quartal {closed_quarter_id} nicht gefunden")
        school_year = self.quarters.get_school_year(closed.school_year_id)
        if school_year is None or school_year.school_id != school_id:
            raise QuarterNotFoundError(
                f"Quartal {closed_quarter_id} gehört nicht zur Schule {school_id}"
            )
        if not closed.is_closed:
            raise QuarterNotClosedError(f"Quartal {closed.name} ist noch nicht geschlossen")

        closed_idx = self.names.index(closed.name)
        targets: dict[int, Optional[Quarter]] = {
            idx: self.quarters.find_quarter(school_year.id, self.names[idx])
            for idx in range(closed_idx + 1, len(self.names))
        }

        result = RedistributionResult()
        projections = self.projections.open_projections(school_id, school_year.id)
        logger.info(
            f"Umverteilung {closed.name} ({school_year.name}): "
            f"{len(projections)} offene Projektionen"
        )
        for projection in projections:
            self._redistribute_projection(projection, closed_idx, targets, result)

        logger.info(
            f"Umverteilung abgeschlossen: {result.redistributed_count} verschoben, "
            f"{len(result.overflow_paces)} Überlauf"
        )
        return result

    # ─── Pro Projektion ───

    def _load_arena(self, projection: Projection) -> dict[str, _ArenaPace]:
        arena: dict[str, _ArenaPace] = {}
        for row in self.projections.paces_for_projection(projection.id):
            entry = self.projections.catalog_entry(row.pace_catalog_id)
            if entry is None:
                logger.warning(
                    f"Projektion {projection.id}: Pace {row.id} ohne Katalogeintrag übersprungen"
                )
                continue
            arena[row.id] = _ArenaPace(
                pace_id=row.id,
                catalog=entry,
                quarter_idx=self.names.index(row.quarter),
                week=row.week,
                graded=row.is_graded,
                status=row.status,
                original_quarter=row.original_quarter,
                original_week=row.original_week,
            )
        return arena

    def _redistribute_projection(
        self,
        projection: Projection,
        closed_idx: int,
        targets: dict[int, Optional[Quarter]],
        result: RedistributionResult,
    ) -> None:
        arena = self._load_arena(projection)
        unfinished = sorted(
            (a for a in arena.values() if a.quarter_idx == closed_idx and not a.graded),
            key=lambda a: (a.order_index, a.week),
        )
        if unfinished:
            logger.debug(f"Projektion {projection.id}: {len(unfinished)} unfertige Paces")

        for pace in unfinished:
            self._process(projection, arena, pace, closed_idx, targets, result)

    def _process(
        self,
        projection: Projection,
        arena: dict[str, _ArenaPace],
        pace: _ArenaPace,
        closed_idx: int,
        targets: dict[int, Optional[Quarter]],
        result: RedistributionResult,
    ) -> None:
        snapshot = {pid: (a.quarter_idx, a.week) for pid, a in arena.items()}

        if pace.original_quarter is None:
            pace.original_quarter = self.names[pace.quarter_idx]
            pace.original_week = pace.week
        pace.status = PaceStatus.UNFINISHED

        try:
            self._place_with_cascade(arena, pace, closed_idx, targets)
        except _PlacementFailed as e:
            self._restore(arena, snapshot)
            self._commit_or_log(projection, [pace])
            self._report_overflow(projection, pace, str(e), result)
            return

        changed = [
            a for pid, a in arena.items()
            if (a.quarter_idx, a.week) != snapshot[pid]
        ]
        try:
            self._commit(changed)
        except Exception as e:
            logger.exception(f"Projektion {projection.id}: Speichern fehlgeschlagen")
            self._restore(arena, snapshot)
            self._report_overflow(projection, pace, f"Speichern fehlgeschlagen: {e}", result)
            return

        result.redistributed_count += 1
        logger.debug(
            f"{pace.catalog.subject_name} {pace.catalog.code}: "
            f"{pace.original_quarter}/W{pace.original_week} → "
            f"{self.names[pace.quarter_idx]}/W{pace.week}"
        )

    # ─── Platzierungsleiter ───

    def _place_with_cascade(
        self,
        arena: dict[str, _ArenaPace],
        pace: _ArenaPace,
        closed_idx: int,
        targets: dict[int, Optional[Quarter]],
    ) -> None:
        first = closed_idx + 1
        if first >= len(self.names):
            raise _PlacementFailed("Kein Folgequartal")
        if targets.get(first) is None:
            raise _PlacementFailed(f"Quartal {self.names[first]} nicht angelegt")

        remaining = len(self.names) - first
        max_steps = (len(arena) + 1) * remaining
        pace.quarter_idx = None
        stack: list[tuple[_ArenaPace, int]] = [(pace, first)]

        for _ in range(max_steps):
            if not stack:
                return
            current, qi = stack[-1]
            if self._try_direct(arena, current, qi, closed_idx, targets[qi].weeks_count):
                stack.pop()
                continue

            nxt = qi + 1
            if nxt >= len(self.names):
                raise _PlacementFailed(f"{self.names[qi]} voll, kein weiteres Quartal")
            if targets.get(nxt) is None:
                raise _PlacementFailed(f"Quartal {self.names[nxt]} nicht angelegt")

            victim = self._pick_victim(arena, current, qi, closed_idx)
            if victim is None:
                stack[-1] = (current, nxt)
                continue
            if len(stack) >= remaining:
                raise _PlacementFailed(f"Verdrängung über {remaining} Quartale erschöpft")

            logger.debug(
                f"Verdränge {victim.catalog.code} aus {self.names[qi]}/W{victim.week} "
                f"nach {self.names[nxt]}"
            )
            victim.quarter_idx = None
            stack.append((victim, nxt))

        if stack:
            raise _PlacementFailed("Platzierung nicht konvergiert")

    def _horizon(
        self,
        arena: dict[str, _ArenaPace],
        key: str,
        closed_idx: int,
        exclude: _ArenaPace,
    ) -> list[_ArenaPace]:
        """Paces der Kategorie in den Quartalen nach dem geschlossenen."""
        return [
            a for a in arena.values()
            if a is not exclude
            and a.key == key
            and a.quarter_idx is not None
            and a.quarter_idx > closed_idx
        ]

    def _try_direct(
        self,
        arena: dict[str, _ArenaPace],
        pace: _ArenaPace,
        qi: int,
        closed_idx: int,
        weeks_count: int,
    ) -> bool:
        n = pace.order_index
        horizon = self._horizon(arena, pace.key, closed_idx, pace)
        in_quarter = [a for a in horizon if a.quarter_idx == qi]
        occupied = {a.week: a for a in in_quarter}

        def fits(week: int) -> bool:
            placed = [(a.order_index, a.position) for a in horizon]
            return week not in occupied and is_order_valid(placed, n, (qi, week))

        lo = max((a.week for a in in_quarter if a.order_index < n), default=0) + 1
        successors = sorted(
            (a for a in in_quarter if a.order_index > n),
            key=lambda a: a.order_index,
        )

        if successors:
            succ = successors[0]
            for week in range(succ.week, lo - 1, -1):
                if fits(week):
                    self._set(pace, qi, week)
                    return True
            if self._ripple_shift(pace, qi, succ, occupied, horizon, weeks_count):
                return True

        for week in range(lo, weeks_count + 1):
            if fits(week):
                self._set(pace, qi, week)
                return True
        return False

    def _ripple_shift(
        self,
        pace: _ArenaPace,
        qi: int,
        succ: _ArenaPace,
        occupied: dict[int, _ArenaPace],
        horizon: list[_ArenaPace],
        weeks_count: int,
    ) -> bool:
        """Nachfolger und den lückenlosen Block dahinter um eine Woche schieben."""
        run_end = succ.week
        while run_end + 1 in occupied:
            run_end += 1
        if run_end + 1 > weeks_count:
            return False

        freed_week = succ.week
        # Vom Blockende her schieben
        run = [occupied[w] for w in range(run_end, freed_week - 1, -1)]
        for a in run:
            a.week += 1

        placed = [(a.order_index, a.position) for a in horizon]
        if not is_order_valid(placed, pace.order_index, (qi, freed_week)):
            for a in run:
                a.week -= 1
            return False

        self._set(pace, qi, freed_week)
        return True

    def _pick_victim(
        self,
        arena: dict[str, _ArenaPace],
        pace: _ArenaPace,
        qi: int,
        closed_idx: int,
    ) -> Optional[_ArenaPace]:
        """Höchste Pace der Kategorie in der letzten belegten Woche von qi."""
        in_quarter = [
            a for a in self._horizon(arena, pace.key, closed_idx, pace)
            if a.quarter_idx == qi
        ]
        if not in_quarter:
            return None
        last_week = max(a.week for a in in_quarter)
        victim = max(
            (a for a in in_quarter if a.week == last_week),
            key=lambda a: a.order_index,
        )
        if victim.order_index < pace.order_index:
            return None
        return victim

    # ─── Hilfen ───

    @staticmethod
    def _set(pace: _ArenaPace, qi: int, week: int) -> None:
        pace.quarter_idx = qi
        pace.week = week

    @staticmethod
    def _restore(arena: dict[str, _ArenaPace], snapshot: dict[str, tuple]) -> None:
        for pid, (qi, week) in snapshot.items():
            arena[pid].quarter_idx = qi
            arena[pid].week = week

    def _commit(self, changed: list[_ArenaPace]) -> None:
        with self.projections.transaction():
            for a in changed:
                self.projections.update_pace(
                    a.pace_id,
                    quarter=self.names[a.quarter_idx],
                    week=a.week,
                    status=a.status,
                    original_quarter=a.original_quarter,
                    original_week=a.original_week,
                )

    def _commit_or_log(self, projection: Projection, changed: list[_ArenaPace]) -> None:
        try:
            self._commit(changed)
        except Exception:
            logger.exception(f"Projektion {projection.id}: Markierung nicht gespeichert")

    def _report_overflow(
        self,
        projection: Projection,
        pace: _ArenaPace,
        reason: str,
        result: RedistributionResult,
    ) -> None:
        logger.warning(
            f"Überlauf: Projektion {projection.id}, {pace.catalog.subject_name} "
            f"{pace.catalog.code} – {reason}"
        )
        result.overflow_paces.append(OverflowPace(
            projection_id=projection.id,
            pace_catalog_id=pace.catalog.id,
            pace_code=pace.catalog.code,
            subject_name=pace.catalog.subject_name,
            reason=reason,
        ))


def redistribute_unfinished_paces(
    store,
    closed_quarter_id: str,
    school_id: str,
    config: Optional[ProjectionConfig] = None,
) -> RedistributionResult:
    """Kurzform für einen Store, der beide Repository-Protokolle erfüllt."""
    return QuarterRedistributor(store, store, config).redistribute(closed_quarter_id, school_id)
