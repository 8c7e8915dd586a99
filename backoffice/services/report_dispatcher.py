"""Report job dispatcher.

Turns a download request into a ``ReportJobMessage`` on the broker and
immediately answers with the URL the client should poll. Nothing here waits
for the worker: a successful response only means the job was handed to the
broker. Broker errors surface synchronously as ``InternalError``; render
errors never reach the requester (they are worker log events).
"""
from __future__ import annotations

from datetime import date
from typing import Optional, Protocol
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from backoffice.config import API_BASE_URL, REPORT_SETTINGS
from backoffice.errors import InternalError, InvalidInputError, NotFoundError
from backoffice.jobs.broker import BrokerUnavailableError
from backoffice.jobs.report_job import ReportJobMessage, ReportKind
from backoffice.models.schemas import DownloadResponse
from backoffice.repositories.harvests import ReferenceRepository
from backoffice.repositories.prices import PriceRepository
from backoffice.utils import get_logger, log_business_event

logger = get_logger(__name__)

PRICE_HISTORY_PENDING_MESSAGE = "Price history report generation in progress. Please check back in a few moments."
HARVEST_PENDING_MESSAGE = "Harvest report generation in progress. Please check back in a few moments."


class JobPublisher(Protocol):
    def publish(self, job: ReportJobMessage) -> None: ...


def validate_date_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise InvalidInputError(
            "start_date must not be after end_date",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )


def _date_query(start_date: date, end_date: date) -> str:
    fmt = REPORT_SETTINGS["date_format"]
    return urlencode({"start_date": start_date.strftime(fmt), "end_date": end_date.strftime(fmt)})


def price_history_download_url(base_url: str, commodity_id: int, city_id: int, start_date: date, end_date: date) -> str:
    return (
        f"{base_url.rstrip('/')}/prices/history/commodity/{commodity_id}/city/{city_id}"
        f"/download/file?{_date_query(start_date, end_date)}"
    )


def harvest_download_url(base_url: str, land_commodity_id: int, start_date: date, end_date: date) -> str:
    return (
        f"{base_url.rstrip('/')}/harvests/land_commodity/{land_commodity_id}"
        f"/download/file?{_date_query(start_date, end_date)}"
    )


class ReportDispatcher:
    def __init__(self, db: Session, publisher: JobPublisher, *, base_url: Optional[str] = None) -> None:
        self.prices = PriceRepository(db)
        self.references = ReferenceRepository(db)
        self.publisher = publisher
        self.base_url = base_url or API_BASE_URL

    def _dispatch(self, job: ReportJobMessage, request_id: Optional[str]) -> None:
        try:
            self.publisher.publish(job)
        except BrokerUnavailableError as e:
            raise InternalError(
                "Report job could not be queued; try again later",
                details={"kind": job.kind.value},
            ) from e
        log_business_event("report_requested", job.to_payload(), request_id)

    def request_price_history_report(
        self,
        commodity_id: int,
        city_id: int,
        start_date: date,
        end_date: date,
        *,
        request_id: Optional[str] = None,
    ) -> DownloadResponse:
        validate_date_range(start_date, end_date)
        if self.prices.find_by_commodity_and_city(commodity_id, city_id) is None:
            raise NotFoundError(f"No live price for commodity {commodity_id} in city {city_id}")

        job = ReportJobMessage(
            kind=ReportKind.PRICE_HISTORY,
            commodity_id=commodity_id,
            city_id=city_id,
            start_date=start_date,
            end_date=end_date,
        )
        self._dispatch(job, request_id)
        return DownloadResponse(
            message=PRICE_HISTORY_PENDING_MESSAGE,
            download_url=price_history_download_url(self.base_url, commodity_id, city_id, start_date, end_date),
        )

    def request_harvest_report(
        self,
        land_commodity_id: int,
        start_date: date,
        end_date: date,
        *,
        request_id: Optional[str] = None,
    ) -> DownloadResponse:
        validate_date_range(start_date, end_date)
        if self.references.find_land_commodity(land_commodity_id) is None:
            raise NotFoundError(f"Land commodity {land_commodity_id} not found")

        job = ReportJobMessage(
            kind=ReportKind.HARVEST,
            land_commodity_id=land_commodity_id,
            start_date=start_date,
            end_date=end_date,
        )
        self._dispatch(job, request_id)
        return DownloadResponse(
            message=HARVEST_PENDING_MESSAGE,
            download_url=harvest_download_url(self.base_url, land_commodity_id, start_date, end_date),
        )


__all__ = [
    "HARVEST_PENDING_MESSAGE",
    "PRICE_HISTORY_PENDING_MESSAGE",
    "ReportDispatcher",
    "harvest_download_url",
    "price_history_download_url",
    "validate_date_range",
]
