"""Demo-Daten für den Pace-Planer.

Erzeugt zufällige, aber reproduzierbare (seed) Generierungsanfragen sowie
einen kompletten Demo-Store: Schuljahr mit vier Quartalen, Pace-Katalog und
eine gespeicherte Projektion.

Absichtliche Engpässe:
  1. Math und Science dürfen nie in derselben Woche liegen
  2. Einzelne Paces werden ausgelassen (skip_paces)
  3. Fächer mit unterschiedlich vielen Paces → Modus B
"""

import random
from datetime import date, timedelta
from typing import Optional

from config.defaults import CATEGORY_METADATA, QUARTER_NAMES, WEEKS_PER_QUARTER
from config.schema import ProjectionConfig
from data.store import InMemoryProjectionStore, persist_generated
from models.generated_pace import GenerationResult
from models.pace_set import PaceSetRequest, ProjectionRequest
from models.projection_pace import PaceCatalogEntry, Projection
from models.quarter import Quarter, SchoolYear

# Katalog deckt drei Jahrgangsstufen à 12 Paces ab
CATALOG_FIRST_CODE = 1001
CATALOG_LAST_CODE = 1048

DEMO_SCHOOL_ID = "school-demo"
DEMO_SCHOOL_YEAR_ID = "sy-demo"


def build_catalog(
    categories: Optional[list[str]] = None,
    first: int = CATALOG_FIRST_CODE,
    last: int = CATALOG_LAST_CODE,
) -> list[PaceCatalogEntry]:
    """Katalogeinträge für alle Kategorien, order_index = numerischer Code."""
    entries = []
    for category in categories or list(CATEGORY_METADATA):
        meta = CATEGORY_METADATA.get(category, {"subject": category})
        for code in range(first, last + 1):
            entries.append(PaceCatalogEntry(
                id=f"{category.lower().replace(' ', '-')}-{code}",
                code=str(code),
                order_index=code,
                subject_id=meta["subject"],
                subject_name=meta["subject"],
                category_id=category,
                category_name=category,
            ))
    return entries


def build_school_year(
    store: InMemoryProjectionStore,
    first_day: date,
    school_id: str = DEMO_SCHOOL_ID,
    school_year_id: str = DEMO_SCHOOL_YEAR_ID,
    break_days: int = 7,
) -> list[Quarter]:
    """Schuljahr mit vier aufeinanderfolgenden Quartalen à 9 Wochen anlegen."""
    store.add_school_year(SchoolYear(
        id=school_year_id,
        school_id=school_id,
        name=f"{first_day.year}/{(first_day.year + 1) % 100:02d}",
    ))
    quarters = []
    start = first_day
    for order, name in enumerate(QUARTER_NAMES, start=1):
        end = start + timedelta(days=WEEKS_PER_QUARTER * 7 - 1)
        quarter = Quarter(
            id=f"{school_year_id}-{name.lower()}",
            school_year_id=school_year_id,
            name=name,
            order=order,
            start_date=start,
            end_date=end,
        )
        store.add_quarter(quarter)
        quarters.append(quarter)
        start = end + timedelta(days=break_days + 1)
    return quarters


class DemoDataGenerator:
    """Generiert Demo-Anfragen und -Stores."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.rng = random.Random(seed)

    # ─── Anfrage ──────────────────────────────────────────────────────────────

    def generate_request(self, student_id: str = "student-demo") -> ProjectionRequest:
        """Sechs Fächer mit je 12–16 Paces (mind. 72 insgesamt)."""
        subjects = []
        for category, meta in CATEGORY_METADATA.items():
            count = self.rng.randint(12, 16)
            level = self.rng.randint(0, 1)
            start = CATALOG_FIRST_CODE + level * 12
            skips = []
            if self.rng.random() < 0.3:
                skips = [start + self.rng.randint(1, count - 2)]
            subjects.append(PaceSetRequest(
                category_id=category,
                subject_id=meta["subject"],
                subject_name=meta["subject"],
                start_pace=start,
                end_pace=start + count - 1 + len(skips),
                skip_paces=skips,
                not_pair_with=list(meta["not_pair_with"]),
                difficulty=meta["difficulty"],
            ))
        return ProjectionRequest(subjects=subjects, student_id=student_id)

    # ─── Store ────────────────────────────────────────────────────────────────

    def generate_store(
        self,
        config: Optional[ProjectionConfig] = None,
        first_day: date = date(2025, 8, 18),
    ) -> tuple[InMemoryProjectionStore, GenerationResult]:
        """Kompletter Demo-Store mit einer generierten Projektion."""
        from solver.generator import ProjectionGenerator

        store = InMemoryProjectionStore()
        build_school_year(store, first_day)
        store.add_catalog_entries(build_catalog())

        request = self.generate_request()
        result = ProjectionGenerator(config).run(request)
        projection = Projection(
            id="projection-demo",
            student_id=request.student_id or "student-demo",
            school_id=DEMO_SCHOOL_ID,
            school_year_id=DEMO_SCHOOL_YEAR_ID,
        )
        persist_generated(store, projection, result, store.catalog)
        return store, result

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, request: ProjectionRequest) -> None:
        """Gibt eine Rich-Tabelle mit den angeforderten Fächern aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box
        from solver.normalizer import expand_pace_codes

        console = Console()
        table = Table(title="Demo-Anfrage", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Fach")
        table.add_column("Paces", justify="right")
        table.add_column("Bereich")
        table.add_column("Schw.", justify="right")

        for s in request.subjects:
            table.add_row(
                s.category_id,
                s.display_name,
                str(len(expand_pace_codes(s))),
                f"{s.start_pace}–{s.end_pace}",
                str(s.difficulty or "-"),
            )
        console.print(table)
