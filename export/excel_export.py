"""Excel-Export einer generierten Projektion (openpyxl)."""

from pathlib import Path
from typing import Optional

from config.defaults import QUARTERS, WEEKS_PER_QUARTER
from models.generated_pace import GenerationMode, GenerationResult

from export.helpers import COLORS, get_category_color, today_str, week_label


class ProjectionExcelExporter:
    """Exportiert ein GenerationResult: Wochenübersicht und ggf. Überlauf."""

    # Spaltenbreiten (Excel-Einheiten)
    COL_WEEK_W = 10
    COL_SUBJECT_W = 18

    # Zeilenhöhen (Punkte)
    ROW_HEADER_H = 22

    def __init__(self, result: GenerationResult, title: Optional[str] = None):
        self.result = result
        self.title = title or "Pace-Projektion"
        self.subjects = sorted({(p.subject_id, p.category_id) for p in result.paces})

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path) -> None:
        """Erstellt die Excel-Datei mit allen Sheets."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb)
        if self.result.unplaced:
            self._sheet_ueberlauf(wb)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_header(self, ws, row: int, headers: list[str]) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = self._center_align(wrap=False)
            cell.border = border
        ws.row_dimensions[row].height = self.ROW_HEADER_H

    # ─── Sheet: Übersicht ─────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb) -> None:
        """36 Wochenzeilen × Fachspalten, Quartale als Zwischenzeilen."""
        from openpyxl.styles import Font
        from openpyxl.utils import get_column_letter

        ws = wb.create_sheet(title="Übersicht", index=0)
        border = self._thin_border()

        row = 1
        ws.cell(row=row, column=1, value=self.title).font = Font(bold=True, size=14)
        row += 1
        mode = "Modus A" if self.result.mode == GenerationMode.UNIFORM_PAIRING else "Modus B"
        ws.cell(row=row, column=1, value=f"Erstellt: {today_str()}")
        ws.cell(row=row, column=3, value=f"Strategie: {mode}")
        ws.cell(
            row=row, column=4,
            value=f"Platziert: {len(self.result.paces)}/{self.result.requested_total}",
        )
        row += 2

        self._write_header(ws, row, ["Woche"] + [s for s, _ in self.subjects] + ["Anzahl"])
        row += 1

        grid = self.result.paces_by_week()
        for quarter in range(1, QUARTERS + 1):
            band = ws.cell(row=row, column=1, value=f"Quartal {quarter}")
            band.font = Font(bold=True)
            for col in range(1, len(self.subjects) + 3):
                ws.cell(row=row, column=col).fill = self._fill(COLORS["quarter"])
            row += 1

            for week in range(1, WEEKS_PER_QUARTER + 1):
                paces = grid.get((quarter, week), [])
                by_subject = {p.subject_id: p for p in paces}
                ws.cell(row=row, column=1, value=week_label(quarter, week)).border = border
                for col, (subject_id, category_id) in enumerate(self.subjects, 2):
                    cell = ws.cell(row=row, column=col)
                    cell.border = border
                    cell.alignment = self._center_align()
                    pace = by_subject.get(subject_id)
                    if pace is None:
                        cell.fill = self._fill(COLORS["free"])
                        continue
                    cell.value = pace.pace_code
                    cell.fill = self._fill(get_category_color(category_id))
                ws.cell(row=row, column=len(self.subjects) + 2, value=len(paces)).border = border
                row += 1

        ws.column_dimensions["A"].width = self.COL_WEEK_W
        for col in range(2, len(self.subjects) + 3):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_SUBJECT_W
        ws.freeze_panes = "B5"

    # ─── Sheet: Überlauf ──────────────────────────────────────────────────────

    def _sheet_ueberlauf(self, wb) -> None:
        ws = wb.create_sheet(title="Überlauf")
        border = self._thin_border()
        self._write_header(ws, 1, ["Fach", "Kategorie", "Pace", "Quartal", "Grund"])
        for row, u in enumerate(self.result.unplaced, 2):
            values = [u.subject_id, u.category_id, u.pace_code, f"Q{u.quarter}", u.reason]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = border
                cell.fill = self._fill(COLORS["overflow"])
        ws.column_dimensions["A"].width = 20
        ws.column_dimensions["B"].width = 16
        ws.column_dimensions["E"].width = 40
