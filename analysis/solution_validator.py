"""Nachträgliche Validierung einer generierten Projektion.

Prüft das Ergebnis unabhängig vom Generator als Sicherheitsnetz:
Kapazität, Exklusivität, Paarung, Reihenfolge und Vollständigkeit.
"""

from collections import Counter, defaultdict
from typing import Literal

from pydantic import BaseModel

from config.defaults import MAX_SUBJECTS_PER_WEEK
from models.generated_pace import GenerationResult
from models.pace_set import ProjectionRequest
from solver.normalizer import SubjectPlan, normalize_request
from solver.order_validator import describe_position, sequence_violations


class ValidationViolation(BaseModel):
    """Eine einzelne Regelverletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "week_capacity"
    description: str
    entity: str          # Fach / Woche


class ValidationReport(BaseModel):
    """Ergebnis der Validierung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = [v for v in self.violations if v.severity == "error"]
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title="Projektions-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Regel", width=20)
        table.add_column("Entität", width=16)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class ProjectionValidator:
    """Prüft ein GenerationResult gegen die ursprüngliche Anfrage."""

    def __init__(self, max_subjects_per_week: int = MAX_SUBJECTS_PER_WEEK) -> None:
        self.max_subjects_per_week = max_subjects_per_week

    def validate(
        self, result: GenerationResult, request: ProjectionRequest
    ) -> ValidationReport:
        subjects = normalize_request(request)
        by_subject = {s.subject_id: s for s in subjects}

        violations: list[ValidationViolation] = []
        violations.extend(self._check_capacity(result, by_subject))
        violations.extend(self._check_exclusivity(result, by_subject))
        violations.extend(self._check_pairing(result, by_subject))
        violations.extend(self._check_ordering(result, by_subject))
        violations.extend(self._check_completeness(result, subjects))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    @staticmethod
    def _tracking(by_subject: dict[str, SubjectPlan], subject_id: str) -> str:
        plan = by_subject.get(subject_id)
        return plan.tracking_id if plan else subject_id

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_capacity(self, result, by_subject) -> list[ValidationViolation]:
        """Höchstens drei Fächer pro Woche."""
        violations = []
        for (quarter, week), paces in sorted(result.paces_by_week().items()):
            tracked = {self._tracking(by_subject, p.subject_id) for p in paces}
            if len(tracked) > self.max_subjects_per_week:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="week_capacity",
                    entity=f"Q{quarter}/W{week}",
                    description=(
                        f"{len(tracked)} Fächer in einer Woche "
                        f"(max. {self.max_subjects_per_week}): {', '.join(sorted(tracked))}"
                    ),
                ))
        return violations

    def _check_exclusivity(self, result, by_subject) -> list[ValidationViolation]:
        """Ein Fach höchstens einmal pro Woche."""
        violations = []
        for (quarter, week), paces in sorted(result.paces_by_week().items()):
            counts = Counter(self._tracking(by_subject, p.subject_id) for p in paces)
            for tracking_id, n in counts.items():
                if n > 1:
                    violations.append(ValidationViolation(
                        severity="error",
                        constraint="week_exclusivity",
                        entity=tracking_id,
                        description=f"Q{quarter}/W{week}: {n} Paces desselben Fachs",
                    ))
        return violations

    def _check_pairing(self, result, by_subject) -> list[ValidationViolation]:
        """not_pair_with: gelockerte Paarungen sind Warnungen, alle anderen Fehler."""
        relaxed = {(r.subject_id, r.pace_code) for r in result.relaxations}
        violations = []
        for (quarter, week), paces in sorted(result.paces_by_week().items()):
            for i, a in enumerate(paces):
                for b in paces[i + 1:]:
                    plan_a = by_subject.get(a.subject_id)
                    plan_b = by_subject.get(b.subject_id)
                    if plan_a is None or plan_b is None:
                        continue
                    if not plan_a.conflicts_with(plan_b.category_id, plan_b.not_pair_with):
                        continue
                    is_relaxed = (
                        (a.subject_id, a.pace_code) in relaxed
                        or (b.subject_id, b.pace_code) in relaxed
                    )
                    violations.append(ValidationViolation(
                        severity="warning" if is_relaxed else "error",
                        constraint="not_pair_with",
                        entity=f"Q{quarter}/W{week}",
                        description=(
                            f"{a.subject_id} {a.pace_code} und {b.subject_id} {b.pace_code} "
                            f"in derselben Woche"
                            + (" (gelockert)" if is_relaxed else "")
                        ),
                    ))
        return violations

    def _check_ordering(self, result, by_subject) -> list[ValidationViolation]:
        """Innerhalb eines Fachs steigt der Pace-Index mit der Position."""
        placed: dict[str, list] = defaultdict(list)
        for p in result.paces:
            placed[self._tracking(by_subject, p.subject_id)].append(
                (p.order_index, (p.quarter - 1, p.week))
            )
        violations = []
        for tracking_id, items in placed.items():
            for (lo, lo_pos), (hi, hi_pos) in sequence_violations(items):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="pace_order",
                    entity=tracking_id,
                    description=(
                        f"Pace {hi} ({describe_position(hi_pos)}) liegt nicht nach "
                        f"Pace {lo} ({describe_position(lo_pos)})"
                    ),
                ))
        return violations

    def _check_completeness(self, result, subjects: list[SubjectPlan]) -> list[ValidationViolation]:
        """Jede angeforderte Pace genau einmal platziert."""
        placed = Counter((p.subject_id, p.pace_code) for p in result.paces)
        violations = []
        for s in subjects:
            for code in s.paces:
                n = placed.get((s.subject_id, code), 0)
                if n == 1:
                    continue
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="completeness",
                    entity=s.subject_id,
                    description=(
                        f"Pace {code} fehlt" if n == 0
                        else f"Pace {code} ist {n}× platziert"
                    ),
                ))
        return violations
