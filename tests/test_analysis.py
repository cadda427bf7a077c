"""Tests für den Projektions-Validator."""

import pytest

from analysis.solution_validator import ProjectionValidator
from models.generated_pace import GeneratedPace, GenerationMode, GenerationResult
from models.pace_set import PaceSetRequest, ProjectionRequest
from solver.generator import ProjectionGenerator


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def subject(category: str, count: int, not_pair_with=()) -> PaceSetRequest:
    return PaceSetRequest(
        category_id=category,
        subject_id=f"{category} 1",
        start_pace=1001,
        end_pace=1000 + count,
        not_pair_with=list(not_pair_with),
    )


def pace(category: str, code: int, quarter: int, week: int) -> GeneratedPace:
    return GeneratedPace(
        category_id=category,
        subject_id=f"{category} 1",
        pace_code=str(code),
        quarter=quarter,
        week=week,
    )


def manual_result(*paces: GeneratedPace) -> GenerationResult:
    return GenerationResult(
        mode=GenerationMode.FREQUENCY_ROUND_ROBIN,
        paces=list(paces),
        requested_total=len(paces),
    )


def constraints(report) -> set[str]:
    return {v.constraint for v in report.violations if v.severity == "error"}


@pytest.fixture
def uniform():
    request = ProjectionRequest(subjects=[subject("Math", 36), subject("English", 36)])
    return request, ProjectionGenerator().run(request)


# ─── Tests ────────────────────────────────────────────────────────────────────

class TestProjectionValidator:
    def test_generated_result_is_valid(self, uniform):
        request, result = uniform
        report = ProjectionValidator().validate(result, request)
        assert report.is_valid
        assert report.violations == []

    def test_capacity_exceeded(self):
        request = ProjectionRequest(subjects=[subject(c, 1) for c in "ABCD"])
        result = manual_result(*(pace(c, 1001, 1, 1) for c in "ABCD"))
        report = ProjectionValidator().validate(result, request)
        assert not report.is_valid
        assert constraints(report) == {"week_capacity"}

    def test_same_subject_twice_in_week(self):
        request = ProjectionRequest(subjects=[subject("A", 2)])
        result = manual_result(pace("A", 1001, 1, 1), pace("A", 1002, 1, 1))
        report = ProjectionValidator().validate(result, request)
        assert "week_exclusivity" in constraints(report)

    def test_order_violation(self):
        request = ProjectionRequest(subjects=[subject("A", 2)])
        result = manual_result(pace("A", 1001, 2, 1), pace("A", 1002, 1, 9))
        report = ProjectionValidator().validate(result, request)
        assert constraints(report) == {"pace_order"}

    def test_forbidden_pairing_is_error(self):
        request = ProjectionRequest(subjects=[subject("A", 1, not_pair_with=("B",)), subject("B", 1)])
        result = manual_result(pace("A", 1001, 1, 1), pace("B", 1001, 1, 1))
        report = ProjectionValidator().validate(result, request)
        assert constraints(report) == {"not_pair_with"}

    def test_relaxed_pairing_is_warning(self):
        request = ProjectionRequest(subjects=[
            subject("A", 36), subject("B", 36, not_pair_with=("A",)), subject("C", 1),
        ])
        result = ProjectionGenerator().run(request)
        report = ProjectionValidator().validate(result, request)
        assert report.is_valid
        assert {v.severity for v in report.violations} == {"warning"}
        assert len(report.violations) == 36

    def test_missing_pace_reported(self, uniform):
        request, result = uniform
        truncated = result.model_copy(update={"paces": result.paces[1:]})
        report = ProjectionValidator().validate(truncated, request)
        assert constraints(report) == {"completeness"}

    def test_unplaced_paces_are_missing(self):
        request = ProjectionRequest(subjects=[subject(c, 36) for c in "ABCD"])
        result = ProjectionGenerator().run(request)
        report = ProjectionValidator().validate(result, request)
        missing = [v for v in report.violations if v.constraint == "completeness"]
        assert len(missing) == len(result.unplaced) == 36

    def test_capacity_limit_configurable(self, uniform):
        request, result = uniform
        report = ProjectionValidator(max_subjects_per_week=1).validate(result, request)
        assert constraints(report) == {"week_capacity"}

    def test_print_rich(self, uniform, capsys):
        request, result = uniform
        ProjectionValidator().validate(result, request).print_rich()
        assert "VALIDE" in capsys.readouterr().out
