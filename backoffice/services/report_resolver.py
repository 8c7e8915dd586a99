"""Polling side of the report pipeline.

The file name is the only link between a download request and the file the
worker produces later: the resolver rebuilds the name stem from the request
parameters and returns the newest render of it. "Not rendered yet" and "never
requested" look the same from here; both are ``NotFoundError``.
"""
from __future__ import annotations

import glob
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from backoffice.config import REPORT_SETTINGS
from backoffice.errors import InternalError, NotFoundError
from backoffice.jobs.report_job import ReportKind
from backoffice.services.report_dispatcher import validate_date_range
from backoffice.utils import get_logger
from backoffice.utils.report_files import report_glob

logger = get_logger(__name__)


class ReportResolver:
    def __init__(self, reports_dir: Optional[str] = None) -> None:
        self.reports_dir = str(reports_dir or REPORT_SETTINGS["reports_dir"])

    def resolve(self, kind: ReportKind, identifiers: Sequence[int], start_date: date, end_date: date) -> Path:
        validate_date_range(start_date, end_date)
        pattern = report_glob(self.reports_dir, kind, identifiers, start_date, end_date)
        try:
            matches = sorted(glob.glob(pattern))
        except OSError as e:
            logger.error("Report lookup failed", pattern=pattern, error=str(e))
            raise InternalError(f"Report lookup failed: {e}") from e

        if not matches:
            raise NotFoundError(
                "Report not found. It may still be generating; try again shortly.",
                details={"kind": kind.value},
            )
        # Timestamps are fixed width, so the lexically last name is the newest render.
        latest = Path(matches[-1])
        logger.debug("Report resolved", path=str(latest), candidates=len(matches))
        return latest

    def resolve_price_history(self, commodity_id: int, city_id: int, start_date: date, end_date: date) -> Path:
        return self.resolve(ReportKind.PRICE_HISTORY, (commodity_id, city_id), start_date, end_date)

    def resolve_harvest(self, land_commodity_id: int, start_date: date, end_date: date) -> Path:
        return self.resolve(ReportKind.HARVEST, (land_commodity_id,), start_date, end_date)


__all__ = ["ReportResolver"]
