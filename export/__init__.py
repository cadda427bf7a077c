"""Export-Modul: Excel (openpyxl) für generierte Projektionen."""

from export.excel_export import ProjectionExcelExporter

__all__ = ["ProjectionExcelExporter"]
