"""Spreadsheet rendering for report jobs (openpyxl).

Layout of every sheet: a title in A1, the header row on row 3 (bold, green
fill, thin borders), data from row 4. The workbook is saved under a
``.part`` name and renamed into place, so a reader globbing for ``*.xlsx``
only ever sees complete files.
"""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from backoffice.config import REPORT_SETTINGS
from backoffice.jobs.report_job import ReportJobMessage
from backoffice.repositories.reports import HarvestReport, PriceHistoryReport
from backoffice.utils import get_logger
from backoffice.utils.report_files import PARTIAL_SUFFIX, report_filename
from backoffice.utils.time import utc_now

logger = get_logger(__name__)

TITLE_FONT = Font(bold=True, size=14)
HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
_THIN = Side(style="thin", color="000000")
HEADER_BORDER = Border(left=_THIN, top=_THIN, right=_THIN, bottom=_THIN)

TITLE_ROW = 1
HEADER_ROW = 3
FIRST_DATA_ROW = 4

PRICE_HISTORY_HEADERS = ("No", "Date", "Price", "Unit", "Commodity", "City")
HARVEST_HEADERS = ("No", "Harvest Date", "Quantity", "Unit", "Commodity", "City")
DATETIME_CELL_FORMAT = "%d-%m-%Y %H:%M:%S"
DATE_CELL_FORMAT = "%d-%m-%Y"


class ReportRenderer:
    def __init__(self, reports_dir: Optional[str] = None, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.reports_dir = Path(reports_dir or REPORT_SETTINGS["reports_dir"])
        self._clock = clock

    def render_price_history(self, job: ReportJobMessage, report: PriceHistoryReport) -> Path:
        title = f"Price History Report - {report.commodity_name} in {report.city_name}"
        rows = [
            (r.recorded_at.strftime(DATETIME_CELL_FORMAT), r.price, r.unit, report.commodity_name, report.city_name)
            for r in report.rows
        ]
        return self._render(job, "Price History", title, PRICE_HISTORY_HEADERS, rows)

    def render_harvest(self, job: ReportJobMessage, report: HarvestReport) -> Path:
        title = f"Harvest Report - {report.commodity_name} ({report.owner_name})"
        rows = [
            (r.harvest_date.strftime(DATE_CELL_FORMAT), r.quantity, r.unit, report.commodity_name, r.city_name)
            for r in report.rows
        ]
        return self._render(job, "Harvests", title, HARVEST_HEADERS, rows)

    def _render(
        self,
        job: ReportJobMessage,
        sheet_title: str,
        title: str,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_title

        ws.cell(row=TITLE_ROW, column=1, value=title).font = TITLE_FONT

        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=HEADER_ROW, column=col, value=header)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.border = HEADER_BORDER

        for index, values in enumerate(rows, start=1):
            row = FIRST_DATA_ROW + index - 1
            ws.cell(row=row, column=1, value=index)
            for col, value in enumerate(values, start=2):
                ws.cell(row=row, column=col, value=value)

        for col, header in enumerate(headers, start=1):
            widest = max([len(header)] + [len(str(values[col - 2])) for values in rows if col > 1])
            ws.column_dimensions[get_column_letter(col)].width = widest + 4

        self.reports_dir.mkdir(parents=True, exist_ok=True)
        target = self.reports_dir / report_filename(
            job.kind, job.identifiers(), job.start_date, job.end_date, self._clock()
        )
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        try:
            wb.save(partial)
            os.replace(partial, target)
        except Exception:
            partial.unlink(missing_ok=True)
            raise
        logger.debug("Workbook written", path=str(target), rows=len(rows))
        return target


__all__ = ["ReportRenderer", "PRICE_HISTORY_HEADERS", "HARVEST_HEADERS", "HEADER_ROW", "FIRST_DATA_ROW"]
