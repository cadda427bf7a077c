"""Tests für den Projektions-Generator (Normalisierung, Modus A, Modus B, Ausgleich)."""

from collections import Counter, defaultdict
from typing import Optional

import pytest
from pydantic import ValidationError as PydanticValidationError

from config.schema import GenerationConfig, OverflowPolicy, ProjectionConfig
from data.fake_data import DemoDataGenerator
from models.generated_pace import GenerationMode, GenerationResult, PairingRelaxation
from models.pace_set import PaceSetRequest, ProjectionRequest
from solver.balancer import WeekBalancer, sync_relaxations
from solver.errors import (
    ConstraintViolationError,
    PlacementOverflowError,
    ValidationError,
)
from solver.frequency import quarter_ranking, split_by_quarter, target_frequency
from solver.generator import ProjectionGenerator, generate
from solver.lattice import WeekLattice
from solver.normalizer import expand_pace_codes, normalize_request
from solver.order_validator import is_order_valid, sequence_violations


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_subject(
    category: str,
    count: int,
    start: int = 1001,
    difficulty: Optional[int] = None,
    not_pair_with: tuple[str, ...] = (),
    subject_id: Optional[str] = None,
    skip: tuple[int, ...] = (),
) -> PaceSetRequest:
    """Fach mit genau `count` Paces ab `start` (ausgelassene werden übersprungen)."""
    return PaceSetRequest(
        category_id=category,
        subject_id=subject_id or f"{category} 1",
        start_pace=start,
        end_pace=start + count - 1 + len(skip),
        skip_paces=list(skip),
        not_pair_with=list(not_pair_with),
        difficulty=difficulty,
    )


def make_request(*subjects: PaceSetRequest) -> ProjectionRequest:
    return ProjectionRequest(subjects=list(subjects))


def run(request: ProjectionRequest, config: Optional[ProjectionConfig] = None) -> GenerationResult:
    return ProjectionGenerator(config).run(request)


def assert_grid_invariants(result: GenerationResult) -> None:
    """Kapazität, Exklusivität und Reihenfolge pro Fach."""
    for (quarter, week), paces in result.paces_by_week().items():
        assert len(paces) <= 3, f"Q{quarter}/W{week}: {len(paces)} Paces"
        counts = Counter(p.subject_id for p in paces)
        assert max(counts.values()) == 1, f"Q{quarter}/W{week}: Fach doppelt"

    by_subject = defaultdict(list)
    for p in result.paces:
        by_subject[p.subject_id].append(p)
    for subject_id, paces in by_subject.items():
        ordered = sorted(paces, key=lambda p: p.week_index)
        codes = [p.order_index for p in ordered]
        assert codes == sorted(codes), f"{subject_id}: Reihenfolge verletzt"


# ─── Normalisierung ───────────────────────────────────────────────────────────

class TestNormalizer:
    def test_expand_skips_paces(self):
        """Ausgelassene Paces fehlen, Reihenfolge bleibt aufsteigend."""
        req = PaceSetRequest(
            category_id="Math", subject_id="Math 1",
            start_pace=1001, end_pace=1005, skip_paces=[1003],
        )
        assert expand_pace_codes(req) == ["1001", "1002", "1004", "1005"]

    def test_expand_empty_range(self):
        """start > end ergibt eine leere Liste, keinen Fehler."""
        req = PaceSetRequest(category_id="Math", subject_id="Math 1", start_pace=1010, end_pace=1001)
        assert expand_pace_codes(req) == []

    def test_default_difficulty(self):
        plans = normalize_request(make_request(make_subject("Math", 10)))
        assert plans[0].difficulty == 3

    def test_tracking_id_category_for_single_subject(self):
        plans = normalize_request(make_request(make_subject("Math", 10)))
        assert plans[0].tracking_id == "Math"

    def test_tracking_id_subject_for_electives(self):
        """Mehrere Fächer einer Kategorie werden pro Fach geführt."""
        plans = normalize_request(make_request(
            make_subject("Electives", 10, subject_id="Art"),
            make_subject("Electives", 10, subject_id="Music"),
        ))
        assert [p.tracking_id for p in plans] == ["Art", "Music"]

    def test_difficulty_out_of_range_rejected(self):
        with pytest.raises(PydanticValidationError):
            PaceSetRequest(
                category_id="Math", subject_id="Math 1",
                start_pace=1001, end_pace=1010, difficulty=6,
            )

    def test_total_requested(self):
        req = make_request(make_subject("Math", 10, skip=(1003,)), make_subject("English", 5))
        assert req.total_requested() == 15


# ─── Mengenprüfung ────────────────────────────────────────────────────────────

class TestQuantityChecks:
    def test_71_paces_fail(self):
        with pytest.raises(ValidationError):
            run(make_request(make_subject("Math", 36), make_subject("English", 35)))

    def test_72_paces_succeed(self):
        result = run(make_request(make_subject("Math", 36), make_subject("English", 36)))
        assert len(result.paces) == 72

    def test_more_than_36_per_subject_fail(self):
        with pytest.raises(ValidationError, match="37"):
            run(make_request(make_subject("Math", 37), make_subject("English", 36)))


# ─── Modus A ──────────────────────────────────────────────────────────────────

class TestUniformPairing:
    def test_two_subjects_share_every_week(self):
        """36 + 36: jede Woche genau eine Math- und eine English-Pace."""
        result = run(make_request(make_subject("Math", 36), make_subject("English", 36)))
        assert result.mode == GenerationMode.UNIFORM_PAIRING
        grid = result.paces_by_week()
        assert len(grid) == 36
        for paces in grid.values():
            assert sorted(p.category_id for p in paces) == ["English", "Math"]

    def test_rotating_cursor_keeps_pace_order(self):
        """Woche i enthält jeweils die (i+1)-te Pace beider Fächer."""
        result = run(make_request(make_subject("Math", 36), make_subject("English", 36)))
        for p in result.paces:
            assert p.order_index == 1001 + p.week_index

    def test_hardest_paired_with_easiest(self):
        result = run(make_request(
            make_subject("A", 18, difficulty=5),
            make_subject("B", 18, difficulty=4),
            make_subject("C", 18, difficulty=2),
            make_subject("D", 18, difficulty=1),
        ))
        grid = result.paces_by_week()
        assert {p.category_id for p in grid[(1, 1)]} == {"A", "D"}
        assert {p.category_id for p in grid[(1, 2)]} == {"B", "C"}
        assert all(len(paces) == 2 for paces in grid.values())

    def test_forbidden_pairing_is_fatal(self):
        with pytest.raises(ConstraintViolationError,
                           match="Invalid difficulty pairing due to notPairWith constraint"):
            run(make_request(
                make_subject("A", 18, difficulty=5, not_pair_with=("D",)),
                make_subject("B", 18, difficulty=4),
                make_subject("C", 18, difficulty=2),
                make_subject("D", 18, difficulty=1),
            ))

    def test_forbidden_pairing_checked_both_directions(self):
        """not_pair_with beim leichteren Fach zählt genauso."""
        with pytest.raises(ConstraintViolationError):
            run(make_request(
                make_subject("A", 18, difficulty=5),
                make_subject("B", 18, difficulty=4),
                make_subject("C", 18, difficulty=2),
                make_subject("D", 18, difficulty=1, not_pair_with=("A",)),
            ))

    def test_odd_subject_count_uses_frequency_mode(self):
        result = run(make_request(
            make_subject("A", 24), make_subject("B", 24), make_subject("C", 24),
        ))
        assert result.mode == GenerationMode.FREQUENCY_ROUND_ROBIN
        assert len(result.paces) == 72
        assert result.unplaced == []
        assert_grid_invariants(result)


# ─── Modus B: Bausteine ───────────────────────────────────────────────────────

class TestFrequencyHelpers:
    def test_split_by_quarter_remainder_first(self):
        assert split_by_quarter(18) == [5, 5, 4, 4]
        assert split_by_quarter(36) == [9, 9, 9, 9]
        assert split_by_quarter(3) == [1, 1, 1, 0]

    @pytest.mark.parametrize("count,expected", [
        (0, 0), (1, 9), (2, 5), (4, 2), (5, 2), (6, 2), (9, 1),
    ])
    def test_target_frequency_half_up(self, count: int, expected: int):
        assert target_frequency(count) == expected

    def test_ranking_dense_before_light(self):
        plans = normalize_request(make_request(
            make_subject("Light", 8),      # 2 pro Quartal
            make_subject("Dense", 20),     # 5 pro Quartal
            make_subject("Mid", 16),       # 4 pro Quartal
        ))
        dist = {p.tracking_id: split_by_quarter(p.total) for p in plans}
        ranking = quarter_ranking(plans, dist, 0)
        assert [p.category_id for p in ranking] == ["Dense", "Mid", "Light"]

    def test_ranking_tie_break_by_total_then_input(self):
        plans = normalize_request(make_request(
            make_subject("First", 17),     # Q1: 5
            make_subject("Second", 17),    # Q1: 5
            make_subject("Bigger", 18),    # Q1: 5, mehr insgesamt
        ))
        dist = {p.tracking_id: split_by_quarter(p.total) for p in plans}
        ranking = quarter_ranking(plans, dist, 0)
        assert [p.category_id for p in ranking] == ["Bigger", "First", "Second"]


# ─── Modus B: Platzierung ─────────────────────────────────────────────────────

class TestFrequencyPlacement:
    def test_mixed_counts_fully_placed(self):
        """36 + 20 + 18 Paces: alles platziert, kein Überlauf."""
        result = run(make_request(
            make_subject("Math", 36), make_subject("English", 20), make_subject("Science", 18),
        ))
        assert result.mode == GenerationMode.FREQUENCY_ROUND_ROBIN
        assert len(result.paces) == 74
        assert result.unplaced == []
        assert_grid_invariants(result)

    def test_quarter_distribution(self):
        result = run(make_request(
            make_subject("Math", 36), make_subject("English", 20), make_subject("Science", 18),
        ))
        per_quarter = Counter(p.quarter for p in result.paces if p.category_id == "Science")
        assert [per_quarter[q] for q in (1, 2, 3, 4)] == [5, 5, 4, 4]

    def test_deterministic(self):
        request = make_request(
            make_subject("Math", 30), make_subject("English", 22), make_subject("Science", 21),
        )
        assert run(request).paces == run(request).paces

    def test_pairing_relaxed_as_last_resort(self):
        """B darf nie neben A, A belegt aber jede Woche → jede B-Pace gelockert."""
        result = run(make_request(
            make_subject("A", 36),
            make_subject("B", 36, not_pair_with=("A",)),
            make_subject("C", 1),
        ))
        assert result.mode == GenerationMode.FREQUENCY_ROUND_ROBIN
        assert len(result.relaxations) == 36
        assert {r.category_id for r in result.relaxations} == {"B"}
        assert all(r.conflicts_with == ["A"] for r in result.relaxations)
        assert len(result.paces) == 73

    def test_wrapped_weeks_still_get_codes_in_order(self):
        """20/20/16/16: Zielwochen kollidieren, der Umlauf nutzt frühere Wochen."""
        result = run(make_request(
            make_subject("A", 20), make_subject("B", 20),
            make_subject("C", 16), make_subject("D", 16),
        ))
        assert result.mode == GenerationMode.FREQUENCY_ROUND_ROBIN
        assert result.unplaced == []
        assert len(result.paces) == 72
        assert_grid_invariants(result)

    def test_seven_light_subjects_fully_placed(self):
        """7 × 12 Paces = 21 pro Quartal bei 27 Slots: nichts bleibt liegen."""
        result = run(make_request(*(make_subject(c, 12) for c in "ABCDEFG")))
        assert result.unplaced == []
        assert len(result.paces) == 84
        assert_grid_invariants(result)
        per_quarter = Counter(p.quarter for p in result.paces)
        assert [per_quarter[q] for q in (1, 2, 3, 4)] == [21, 21, 21, 21]

    def test_relaxations_match_final_positions(self):
        result = run(make_request(
            make_subject("A", 36),
            make_subject("B", 36, not_pair_with=("A",)),
            make_subject("C", 1),
        ))
        positions = {(p.subject_id, p.pace_code): (p.quarter, p.week) for p in result.paces}
        for r in result.relaxations:
            assert positions[(r.subject_id, r.pace_code)] == (r.quarter, r.week)

    def test_overflow_reported_by_default(self):
        """4 × 36 Paces passen nicht in 36 × 3 Slots."""
        result = run(make_request(*(make_subject(c, 36) for c in "ABCD")))
        assert len(result.paces) == 108
        assert len(result.unplaced) == 36
        assert len(result.paces) + len(result.unplaced) == result.requested_total
        assert not result.is_complete
        assert_grid_invariants(result)

    def test_overflow_raises_with_policy(self):
        config = ProjectionConfig(generation=GenerationConfig(overflow_policy=OverflowPolicy.RAISE))
        with pytest.raises(PlacementOverflowError):
            run(make_request(*(make_subject(c, 36) for c in "ABCD")), config)

    def test_generate_returns_paces_only(self):
        request = make_request(make_subject("Math", 36), make_subject("English", 20),
                               make_subject("Science", 18))
        assert generate(request) == run(request).paces

    def test_output_sorted_by_quarter_subject_code(self):
        result = run(make_request(
            make_subject("Math", 36), make_subject("English", 20), make_subject("Science", 18),
        ))
        keys = [(p.quarter, p.subject_id, p.order_index) for p in result.paces]
        assert keys == sorted(keys)


# ─── Ausgleich ────────────────────────────────────────────────────────────────

class TestBalancer:
    def _three_singletons(self):
        return normalize_request(make_request(
            make_subject("X", 1), make_subject("Y", 1), make_subject("Z", 1),
        ))

    def test_moves_last_pace_of_dense_week_to_earliest_sparse(self):
        plans = self._three_singletons()
        lattice = WeekLattice()
        for plan in plans:
            lattice.place(8, plan, plan.paces[0])

        moves = WeekBalancer(lattice, plans).balance()

        assert moves == 1
        assert [p.category_id for p in lattice.slots[0].paces] == ["Z"]
        assert lattice.slots[8].load == 2

    def test_respects_quarter_boundary(self):
        """Eine dichte Woche in Q2 gibt nie an Q1 ab."""
        plans = self._three_singletons()
        lattice = WeekLattice()
        for plan in plans:
            lattice.place(9 + 8, plan, plan.paces[0])

        WeekBalancer(lattice, plans).balance()

        assert all(slot.load == 0 for slot in lattice.quarter_slots(0))
        assert lattice.slots[9].load == 1

    def test_fixed_point_without_dense_weeks(self):
        plans = self._three_singletons()
        lattice = WeekLattice()
        lattice.place(0, plans[0], plans[0].paces[0])
        assert WeekBalancer(lattice, plans).balance() == 0

    def test_moved_relaxed_pace_loses_its_conflict(self):
        """X sitzt gelockert neben Y; nach dem Verschieben in Woche 1 ist der Konflikt weg."""
        plans = {p.category_id: p for p in normalize_request(make_request(
            make_subject("X", 1, not_pair_with=("Y",)), make_subject("Y", 1), make_subject("Z", 1),
        ))}
        lattice = WeekLattice()
        for category in ("Z", "Y", "X"):
            lattice.place(8, plans[category], plans[category].paces[0])
        relaxation = PairingRelaxation(
            category_id="X", subject_id="X 1", pace_code="1001",
            quarter=1, week=9, conflicts_with=["Y"],
        )

        assert WeekBalancer(lattice, list(plans.values())).balance() == 1
        assert [p.category_id for p in lattice.slots[0].paces] == ["X"]
        assert sync_relaxations(lattice, [relaxation]) == []

    def test_unmoved_relaxation_kept(self):
        plans = {p.category_id: p for p in normalize_request(make_request(
            make_subject("X", 1, not_pair_with=("Y",)), make_subject("Y", 1),
        ))}
        lattice = WeekLattice()
        for category in ("Y", "X"):
            lattice.place(4, plans[category], plans[category].paces[0])
        relaxation = PairingRelaxation(
            category_id="X", subject_id="X 1", pace_code="1001",
            quarter=1, week=5, conflicts_with=["Y"],
        )

        assert WeekBalancer(lattice, list(plans.values())).balance() == 0
        assert sync_relaxations(lattice, [relaxation]) == [relaxation]


# ─── Reihenfolge-Regel ────────────────────────────────────────────────────────

class TestOrderValidator:
    PLACED = [(1001, (0, 1)), (1003, (0, 5))]

    def test_between_neighbours_valid(self):
        assert is_order_valid(self.PLACED, 1002, (0, 3))

    def test_after_higher_index_invalid(self):
        assert not is_order_valid(self.PLACED, 1002, (0, 6))

    def test_same_position_as_other_index_invalid(self):
        assert not is_order_valid(self.PLACED, 1002, (0, 5))

    def test_before_lower_index_invalid(self):
        assert not is_order_valid(self.PLACED, 1004, (0, 4))

    def test_quarter_dominates_week(self):
        assert is_order_valid(self.PLACED, 1004, (1, 1))

    def test_sequence_violations(self):
        violations = sequence_violations([(1001, (0, 5)), (1002, (0, 3)), (1003, (1, 1))])
        assert violations == [((1001, (0, 5)), (1002, (0, 3)))]


# ─── Demo-Anfragen ────────────────────────────────────────────────────────────

class TestDemoRequests:
    @pytest.mark.parametrize("seed", [1, 2, 3, 7, 42])
    def test_invariants_hold(self, seed: int):
        request = DemoDataGenerator(seed=seed).generate_request()
        result = run(request)
        assert len(result.paces) + len(result.unplaced) == request.total_requested()
        assert_grid_invariants(result)

    def test_same_seed_same_request(self):
        assert DemoDataGenerator(seed=5).generate_request() == DemoDataGenerator(seed=5).generate_request()

    def test_result_json_roundtrip(self, tmp_path):
        result = run(DemoDataGenerator(seed=42).generate_request())
        path = tmp_path / "projection.json"
        result.save_json(path)
        loaded = GenerationResult.load_json(path)
        assert loaded.paces == result.paces
        assert loaded.mode == result.mode
        assert loaded.created_at is not None
