"""Tests für Excel-Export und CLI."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from openpyxl import load_workbook

from data.store import InMemoryProjectionStore
from export.excel_export import ProjectionExcelExporter
from export.helpers import get_category_color, week_label, COLORS
from main import cli
from models.pace_set import PaceSetRequest, ProjectionRequest
from solver.generator import ProjectionGenerator


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_result(categories: str, count: int):
    request = ProjectionRequest(subjects=[
        PaceSetRequest(category_id=c, subject_id=f"{c} 1", start_pace=1001,
                       end_pace=1000 + count)
        for c in categories.split(",")
    ])
    return ProjectionGenerator().run(request)


@pytest.fixture
def runner():
    return CliRunner()


# ─── Excel ────────────────────────────────────────────────────────────────────

class TestExcelExport:
    def test_overview_sheet(self, tmp_path):
        path = tmp_path / "projection.xlsx"
        ProjectionExcelExporter(make_result("Math,English", 36), title="Testschule").export(path)

        wb = load_workbook(path)
        assert wb.sheetnames == ["Übersicht"]
        ws = wb["Übersicht"]
        assert ws["A1"].value == "Testschule"
        assert [c.value for c in ws[4]] == ["Woche", "English 1", "Math 1", "Anzahl"]
        assert ws["A5"].value == "Quartal 1"
        assert ws["A6"].value == "Q1 W1"
        assert ws["B6"].value == "1001"
        assert ws["D6"].value == 2

    def test_all_weeks_and_quarters(self, tmp_path):
        path = tmp_path / "projection.xlsx"
        ProjectionExcelExporter(make_result("Math,English", 36)).export(path)
        ws = load_workbook(path)["Übersicht"]
        labels = [ws.cell(row=r, column=1).value for r in range(5, ws.max_row + 1)]
        assert labels.count("Quartal 4") == 1
        assert sum(1 for v in labels if v and v.startswith("Q") and " W" in v) == 36

    def test_overflow_sheet_only_with_unplaced(self, tmp_path):
        path = tmp_path / "overflow.xlsx"
        result = make_result("A,B,C,D", 36)
        ProjectionExcelExporter(result).export(path)

        wb = load_workbook(path)
        assert wb.sheetnames == ["Übersicht", "Überlauf"]
        ws = wb["Überlauf"]
        assert ws["A1"].value == "Fach"
        assert ws.max_row == len(result.unplaced) + 1

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "tief" / "verschachtelt" / "p.xlsx"
        ProjectionExcelExporter(make_result("Math,English", 36)).export(path)
        assert path.exists()

    def test_helpers(self):
        assert week_label(2, 7) == "Q2 W7"
        assert get_category_color("Math") == COLORS["Math"]
        assert get_category_color("Latein") == COLORS["sonstig"]


# ─── CLI ──────────────────────────────────────────────────────────────────────

class TestCli:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("generate", "validate", "close-quarter", "demo-store", "config"):
            assert command in result.output

    def test_config_init_and_show(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        result = runner.invoke(cli, ["--config", str(path), "config", "init"])
        assert result.exit_code == 0
        assert path.exists()

        again = runner.invoke(cli, ["--config", str(path), "config", "init"])
        assert "existiert bereits" in again.output

        shown = runner.invoke(cli, ["--config", str(path), "config", "show"])
        assert shown.exit_code == 0
        assert "Muster-Schule" in shown.output

    def test_invalid_config_aborts(self, runner, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("generation:\n  max_subjects_per_week: 9\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config", str(path), "config", "show"])
        assert result.exit_code == 1

    def test_generate_demo(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, [
                "generate", "--demo", "--seed", "3", "--show-weeks",
                "-o", "out/projection.json", "--excel", "out/projection.xlsx",
            ])
            assert result.exit_code == 0, result.output
            assert Path("out/projection.json").exists()
            assert Path("out/request.json").exists()
            assert Path("out/projection.xlsx").exists()

    def test_generate_and_validate(self, runner):
        with runner.isolated_filesystem():
            request = ProjectionRequest(subjects=[
                PaceSetRequest(category_id=c, subject_id=f"{c} 1", start_pace=1001, end_pace=1036)
                for c in ("Math", "English")
            ])
            request.save_json(Path("anfrage.json"))

            result = runner.invoke(cli, ["generate", "anfrage.json", "-o", "ergebnis.json"])
            assert result.exit_code == 0, result.output
            assert "Modus A" in result.output

            checked = runner.invoke(cli, ["validate", "ergebnis.json", "anfrage.json"])
            assert checked.exit_code == 0, checked.output

    def test_generate_requires_input(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["generate"])
            assert result.exit_code == 1

    def test_generate_rejects_small_request(self, runner):
        with runner.isolated_filesystem():
            request = ProjectionRequest(subjects=[
                PaceSetRequest(category_id="Math", subject_id="Math 1",
                               start_pace=1001, end_pace=1010),
            ])
            request.save_json(Path("anfrage.json"))
            result = runner.invoke(cli, ["generate", "anfrage.json", "--no-validate"])
            assert result.exit_code == 1
            assert "Fehler" in result.output
            assert not Path("output/projection.json").exists()

    def test_validate_detects_tampering(self, runner):
        with runner.isolated_filesystem():
            runner.invoke(cli, ["generate", "--demo", "-o", "out/projection.json", "--no-validate"])
            data = json.loads(Path("out/projection.json").read_text(encoding="utf-8"))
            data["paces"] = data["paces"][1:]
            Path("out/projection.json").write_text(json.dumps(data), encoding="utf-8")

            result = runner.invoke(cli, ["validate", "out/projection.json", "out/request.json"])
            assert result.exit_code == 1

    def test_close_quarter_workflow(self, runner):
        with runner.isolated_filesystem():
            created = runner.invoke(cli, ["demo-store", "-o", "store.json"])
            assert created.exit_code == 0, created.output

            early = runner.invoke(cli, [
                "close-quarter", "sy-demo-q1", "--store", "store.json",
                "--closed-by", "lehrer", "--now", "2025-10-19",
            ])
            assert early.exit_code == 1

            closed = runner.invoke(cli, [
                "close-quarter", "sy-demo-q1", "--store", "store.json",
                "--closed-by", "lehrer", "--now", "2025-10-22",
            ])
            assert closed.exit_code == 0, closed.output

            store = InMemoryProjectionStore.load_json(Path("store.json"))
            assert store.get_quarter("sy-demo-q1").is_closed
            assert store.get_quarter("sy-demo-q1").closed_by == "lehrer"
            q1_rows = [
                p for p in store.paces_for_projection("projection-demo") if p.quarter == "Q1"
            ]
            assert all(p.original_quarter == "Q1" for p in q1_rows)

    def test_auto_close(self, runner):
        with runner.isolated_filesystem():
            runner.invoke(cli, ["demo-store", "-o", "store.json"])
            result = runner.invoke(cli, [
                "close-quarter", "--auto", "--store", "store.json", "--now", "2025-10-27",
            ])
            assert result.exit_code == 0, result.output
            store = InMemoryProjectionStore.load_json(Path("store.json"))
            assert [q.id for q in store.all_quarters() if q.is_closed] == ["sy-demo-q1"]

    def test_close_quarter_without_store(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["close-quarter", "--auto", "--store", "fehlt.json"])
            assert result.exit_code == 1
