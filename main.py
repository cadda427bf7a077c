"""Pace-Planer — Haupt-CLI.

Verwendung:
  python main.py config init                  Standard-Konfiguration anlegen
  python main.py config show                  Konfiguration anzeigen
  python main.py generate anfrage.json        Projektion generieren
  python main.py generate --demo              Projektion aus Demo-Anfrage
  python main.py generate --demo --excel out.xlsx
  python main.py validate ergebnis.json anfrage.json
  python main.py demo-store                   Demo-Store (JSON) anlegen
  python main.py close-quarter <quartal-id>   Quartal schließen + umverteilen
  python main.py close-quarter --auto         fällige Quartale schließen
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

DEFAULT_RESULT_JSON = Path("output/projection.json")
DEFAULT_STORE_JSON = Path("output/store.json")


def _load_config(ctx: click.Context):
    """Lädt die Konfiguration (Standardwerte, falls keine Datei existiert)."""
    from config.manager import ConfigManager
    mgr = ConfigManager(ctx.obj.get("config_path"))
    try:
        return mgr.load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _abort(e: Exception) -> None:
    console.print(f"[red bold]Fehler:[/red bold] {e}")
    sys.exit(1)


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    except ValueError:
        raise click.BadParameter(f"Ungültiges Datum: {value} (erwartet YYYY-MM-DD)")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen oder anzeigen."""


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
@click.pass_context
def config_init(ctx: click.Context, force: bool):
    """Legt die Standard-Konfiguration als YAML an."""
    from config.manager import ConfigManager
    from config.defaults import default_projection_config

    mgr = ConfigManager(ctx.obj.get("config_path"))
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Mit [bold]--force[/bold] überschreiben."
        )
        return
    mgr.save(default_projection_config())


@cmd_config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Zeigt die aktuelle Konfiguration an."""
    config = _load_config(ctx)

    cal = config.calendar
    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  "
        f"{cal.quarters} Quartale × {cal.weeks_per_quarter} Wochen",
        title="Pace-Planer",
        border_style="cyan",
    ))

    gen = config.generation
    table = Table(title="Generierung", box=box.ROUNDED)
    table.add_column("Parameter")
    table.add_column("Wert", justify="right")
    table.add_row("Min. Paces gesamt", str(gen.min_total_paces))
    table.add_row("Max. Paces je Fach", str(gen.max_paces_per_subject))
    table.add_row("Max. Fächer je Woche", str(gen.max_subjects_per_week))
    table.add_row("Standard-Schwierigkeit", str(gen.default_difficulty))
    table.add_row("Überlauf", gen.overflow_policy.value)
    table.add_row("Wochenausgleich", "ja" if gen.balance_weeks else "nein")
    console.print(table)

    console.print(
        f"[bold]Quartalsabschluss:[/bold] Kulanzfrist "
        f"{config.redistribution.grace_period_days} Tage"
    )


# ─── GENERATE ─────────────────────────────────────────────────────────────────

def _print_week_table(result) -> None:
    table = Table(title="Wochenbelegung", box=box.SIMPLE_HEAVY)
    table.add_column("Woche")
    for q in range(1, 5):
        table.add_column(f"Q{q}")
    grid = result.paces_by_week()
    for week in range(1, 10):
        cells = []
        for q in range(1, 5):
            paces = grid.get((q, week), [])
            cells.append(", ".join(f"{p.subject_id} {p.pace_code}" for p in paces) or "–")
        table.add_row(str(week), *cells)
    console.print(table)


@click.command("generate")
@click.argument("request_file", required=False, type=click.Path(exists=True, path_type=Path))
@click.option("--demo", is_flag=True, default=False, help="Demo-Anfrage verwenden.")
@click.option("--seed", default=42, help="Zufalls-Seed für die Demo-Anfrage.")
@click.option("--output", "-o", default=str(DEFAULT_RESULT_JSON),
              help="Pfad für das Ergebnis (JSON).")
@click.option("--excel", "excel_path", default=None, help="Zusätzlich als Excel exportieren.")
@click.option("--validate/--no-validate", "run_validate", default=True,
              help="Ergebnis nach der Generierung prüfen.")
@click.option("--show-weeks", is_flag=True, default=False, help="Wochenbelegung ausgeben.")
@click.pass_context
def cmd_generate(
    ctx: click.Context,
    request_file: Optional[Path],
    demo: bool,
    seed: int,
    output: str,
    excel_path: Optional[str],
    run_validate: bool,
    show_weeks: bool,
):
    """Generiert eine Projektion aus einer Anfrage (JSON) oder Demo-Daten."""
    from models.pace_set import ProjectionRequest
    from solver.errors import SchedulingError
    from solver.generator import ProjectionGenerator

    config = _load_config(ctx)

    if demo:
        from data.fake_data import DemoDataGenerator
        gen = DemoDataGenerator(seed=seed)
        request = gen.generate_request()
        gen.print_summary(request)
        request.save_json(Path(output).with_name("request.json"))
    elif request_file is not None:
        request = ProjectionRequest.load_json(request_file)
    else:
        console.print("[red]Anfrage-Datei oder --demo angeben.[/red]")
        sys.exit(1)

    try:
        result = ProjectionGenerator(config).run(request)
    except SchedulingError as e:
        _abort(e)

    console.print(Panel(result.summary(), title="Projektion", border_style="cyan"))
    if show_weeks:
        _print_week_table(result)

    result.save_json(Path(output))
    console.print(f"[green]✓[/green] Ergebnis gespeichert: {output}")

    if excel_path:
        from export.excel_export import ProjectionExcelExporter
        ProjectionExcelExporter(result, title=config.school_name).export(Path(excel_path))
        console.print(f"[green]✓[/green] Excel gespeichert: {excel_path}")

    if run_validate:
        from analysis.solution_validator import ProjectionValidator
        report = ProjectionValidator(config.generation.max_subjects_per_week).validate(
            result, request,
        )
        report.print_rich()


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.argument("result_file", type=click.Path(exists=True, path_type=Path))
@click.argument("request_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def cmd_validate(ctx: click.Context, result_file: Path, request_file: Path):
    """Prüft ein gespeichertes Ergebnis gegen seine Anfrage."""
    from analysis.solution_validator import ProjectionValidator
    from models.generated_pace import GenerationResult
    from models.pace_set import ProjectionRequest

    config = _load_config(ctx)
    result = GenerationResult.load_json(result_file)
    request = ProjectionRequest.load_json(request_file)

    console.print(f"\n{result.summary()}\n")
    report = ProjectionValidator(config.generation.max_subjects_per_week).validate(
        result, request,
    )
    report.print_rich()

    sys.exit(0 if report.is_valid else 1)


# ─── DEMO-STORE ───────────────────────────────────────────────────────────────

@click.command("demo-store")
@click.option("--seed", default=42, help="Zufalls-Seed.")
@click.option("--output", "-o", default=str(DEFAULT_STORE_JSON), help="Pfad für den Store.")
@click.pass_context
def cmd_demo_store(ctx: click.Context, seed: int, output: str):
    """Legt einen Demo-Store mit Schuljahr, Katalog und Projektion an."""
    from data.fake_data import DemoDataGenerator
    from solver.errors import SchedulingError

    config = _load_config(ctx)
    try:
        store, result = DemoDataGenerator(seed=seed).generate_store(config)
    except SchedulingError as e:
        _abort(e)

    store.save_json(Path(output))
    console.print(f"[dim]{result.summary()}[/dim]")
    table = Table(title="Quartale", box=box.ROUNDED)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Beginn")
    table.add_column("Ende")
    for q in store.all_quarters():
        table.add_row(q.id, q.name, q.start_date.isoformat(), q.end_date.isoformat())
    console.print(table)
    console.print(f"[green]✓[/green] Store gespeichert: {output}")


# ─── CLOSE-QUARTER ────────────────────────────────────────────────────────────

@click.command("close-quarter")
@click.argument("quarter_id", required=False)
@click.option("--store", "store_path", default=str(DEFAULT_STORE_JSON),
              help="Pfad zum Store (JSON).")
@click.option("--school", "school_id", default=None, help="Schul-ID (Standard: aus Schuljahr).")
@click.option("--closed-by", default=None, help="Benutzer bei manuellem Abschluss.")
@click.option("--now", "now_str", default=None, help="Stichtag YYYY-MM-DD (Standard: heute).")
@click.option("--auto", "auto_close", is_flag=True, default=False,
              help="Alle fälligen Quartale automatisch schließen.")
@click.pass_context
def cmd_close_quarter(
    ctx: click.Context,
    quarter_id: Optional[str],
    store_path: str,
    school_id: Optional[str],
    closed_by: Optional[str],
    now_str: Optional[str],
    auto_close: bool,
):
    """Schließt ein Quartal und verteilt unfertige Paces um."""
    from data.store import InMemoryProjectionStore
    from solver.errors import SchedulingError
    from solver.quarter_close import QuarterCloser

    config = _load_config(ctx)
    path = Path(store_path)
    if not path.exists():
        console.print(
            f"[red]Kein Store gefunden: {path}[/red]\n"
            "Verwenden Sie [bold]python main.py demo-store[/bold]."
        )
        sys.exit(1)

    store = InMemoryProjectionStore.load_json(path)
    closer = QuarterCloser(store, config)
    now = _parse_now(now_str)

    if auto_close:
        closed = closer.auto_close_due_quarters(now)
        store.save_json(path)
        console.print(f"[green]✓[/green] {len(closed)} Quartale geschlossen")
        return

    if quarter_id is None:
        console.print("[red]Quartal-ID oder --auto angeben.[/red]")
        sys.exit(1)

    if school_id is None:
        quarter = store.get_quarter(quarter_id)
        school_year = store.get_school_year(quarter.school_year_id) if quarter else None
        school_id = school_year.school_id if school_year else ""

    try:
        result = closer.close_quarter(quarter_id, school_id, closed_by=closed_by, now=now)
    except SchedulingError as e:
        _abort(e)

    store.save_json(path)
    if result is None:
        console.print("[yellow]Quartal geschlossen, Umverteilung fehlgeschlagen (siehe Log).[/yellow]")
        return
    result.print_rich()


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path),
              help="Pfad zur Konfigurationsdatei (YAML).")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Ausführliches Logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """Pace-Planer: Jahresprojektionen erzeugen und Quartale abschließen."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if verbose:
        from rich.logging import RichHandler
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def main():
    """Einstiegspunkt."""
    cli(obj={})


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_validate)
cli.add_command(cmd_demo_store)
cli.add_command(cmd_close_quarter)


if __name__ == "__main__":
    main()
