"""
Spreadsheet rendering using openpyxl.

Writes the consolidated extraction table (and an optional summary sheet) to
an in-memory .xlsx workbook.
"""

import io
import logging
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from .records import header_number_format

logger = logging.getLogger(__name__)

DATA_SHEET_TITLE = "Relatório Consolidado"
SUMMARY_SHEET_TITLE = "Resumo"

MIN_COLUMN_WIDTH = 12
MAX_COLUMN_WIDTH = 60


class SpreadsheetService:
    """Renders headers and row objects into an .xlsx file."""

    def render(
        self,
        headers: list[str],
        rows: list[dict[str, Any]],
        aggregate: dict[str, dict[str, str]] | None = None,
        summaries: dict[str, str] | None = None,
    ) -> bytes:
        """
        Build the workbook and return its bytes.

        Args:
            headers: Ordered column names.
            rows: One dict per record, keyed by header.
            aggregate: Optional per-identity totals for the summary sheet.
            summaries: Optional per-document summaries for the summary sheet.

        Returns:
            The .xlsx file content.

        Raises:
            ValueError: If no headers are given.
        """
        if not headers:
            raise ValueError("At least one header is required")

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = DATA_SHEET_TITLE

        sheet.append(headers)
        for cell in sheet[1]:
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center", vertical="center")

        if rows:
            for row in rows:
                sheet.append([row.get(header) for header in headers])
        else:
            sheet.append(["Nenhum dado válido para exportar."])

        self._format_columns(sheet, headers)
        sheet.freeze_panes = "A2"

        if aggregate or summaries:
            self._write_summary_sheet(workbook, aggregate or {}, summaries or {})

        buffer = io.BytesIO()
        workbook.save(buffer)
        logger.info("Rendered spreadsheet: %d column(s), %d row(s)", len(headers), len(rows))
        return buffer.getvalue()

    def _format_columns(self, sheet, headers: list[str]) -> None:
        for index, header in enumerate(headers, start=1):
            letter = get_column_letter(index)
            number_format = header_number_format(header)
            longest = len(header)

            for (cell,) in sheet.iter_rows(min_row=2, min_col=index, max_col=index):
                if cell.value is None:
                    continue
                if number_format and isinstance(cell.value, (int, float)):
                    cell.number_format = number_format
                longest = max(longest, len(str(cell.value)))

            sheet.column_dimensions[letter].width = min(
                max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH
            )

    def _write_summary_sheet(
        self,
        workbook: Workbook,
        aggregate: dict[str, dict[str, str]],
        summaries: dict[str, str],
    ) -> None:
        sheet = workbook.create_sheet(SUMMARY_SHEET_TITLE)
        bold = Font(bold=True)

        if aggregate:
            sheet.append(["Nome", "Total Horas", "Total Extras"])
            for cell in sheet[sheet.max_row]:
                cell.font = bold
            for identity, totals in sorted(aggregate.items()):
                sheet.append([
                    identity,
                    float(totals["totalHoras"]),
                    float(totals["totalExtras"]),
                ])
                for cell in sheet[sheet.max_row][1:]:
                    cell.number_format = "#,##0.00"

        if summaries:
            if aggregate:
                sheet.append([])
            sheet.append(["Arquivo", "Resumo"])
            for cell in sheet[sheet.max_row]:
                cell.font = bold
            for filename, summary in summaries.items():
                sheet.append([filename, summary])
                sheet.cell(row=sheet.max_row, column=2).alignment = Alignment(
                    wrap_text=True, vertical="top"
                )

        sheet.column_dimensions["A"].width = 40
        sheet.column_dimensions["B"].width = 60 if summaries else 15
        sheet.column_dimensions["C"].width = 15


# Singleton instance for convenience
_spreadsheet_service: SpreadsheetService | None = None


def get_spreadsheet_service() -> SpreadsheetService:
    """Get or create the spreadsheet service singleton."""
    global _spreadsheet_service
    if _spreadsheet_service is None:
        _spreadsheet_service = SpreadsheetService()
    return _spreadsheet_service
