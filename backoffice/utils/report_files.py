"""Report file naming shared by the renderer (worker) and the resolver (API).

A rendered file is named::

    <prefix>_<id>[_<id>...]_<start>_<end>_<timestamp>.xlsx

The timestamp is UTC with a fixed width and most significant field first, so
sorting names lexically sorts renders of the same request by time. Both sides
must build names through this module; the retrieval protocol depends on it.
"""
from __future__ import annotations

import glob
import os
from datetime import date, datetime, timezone
from typing import Sequence

from backoffice.config import REPORT_SETTINGS
from backoffice.jobs.report_job import ReportKind

REPORT_EXTENSION = ".xlsx"
PARTIAL_SUFFIX = ".part"

FILE_PREFIXES: dict[ReportKind, str] = {
    ReportKind.PRICE_HISTORY: "price_history",
    ReportKind.HARVEST: "harvests",
}


def _stem(kind: ReportKind, identifiers: Sequence[object], start: date, end: date) -> str:
    date_format = REPORT_SETTINGS["date_format"]
    parts = [FILE_PREFIXES[kind], *(str(i) for i in identifiers), start.strftime(date_format), end.strftime(date_format)]
    return "_".join(parts)


def format_timestamp(generated_at: datetime) -> str:
    if generated_at.tzinfo is not None:
        generated_at = generated_at.astimezone(timezone.utc)
    return generated_at.strftime(REPORT_SETTINGS["timestamp_format"])


def report_filename(
    kind: ReportKind,
    identifiers: Sequence[object],
    start: date,
    end: date,
    generated_at: datetime,
) -> str:
    return f"{_stem(kind, identifiers, start, end)}_{format_timestamp(generated_at)}{REPORT_EXTENSION}"


def report_glob(reports_dir: str, kind: ReportKind, identifiers: Sequence[object], start: date, end: date) -> str:
    """Glob matching every render of one logical request (any timestamp)."""
    fixed = glob.escape(os.path.join(reports_dir, _stem(kind, identifiers, start, end)))
    return f"{fixed}_*{REPORT_EXTENSION}"


__all__ = [
    "REPORT_EXTENSION",
    "PARTIAL_SUFFIX",
    "FILE_PREFIXES",
    "format_timestamp",
    "report_filename",
    "report_glob",
]
