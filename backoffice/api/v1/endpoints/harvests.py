"""
Harvest endpoints: recording, listing and harvest report download.
"""
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse

from backoffice.api.deps import (
    get_harvest_service,
    get_report_dispatcher,
    get_report_resolver,
    get_request_id,
)
from backoffice.config import REPORT_SETTINGS
from backoffice.models.schemas import DownloadResponse, HarvestCreate, HarvestRead
from backoffice.services.harvests import HarvestService
from backoffice.services.report_dispatcher import ReportDispatcher
from backoffice.services.report_resolver import ReportResolver
from backoffice.utils import get_logger

router = APIRouter()
logger = get_logger(__name__)

@router.post("/", response_model=HarvestRead, status_code=status.HTTP_201_CREATED, summary="Record harvest")
def create_harvest(
    payload: HarvestCreate,
    service: HarvestService = Depends(get_harvest_service),
    request_id: str = Depends(get_request_id),
) -> HarvestRead:
    return service.create_harvest(payload, request_id=request_id)

@router.get(
    "/land_commodity/{land_commodity_id}",
    response_model=List[HarvestRead],
    summary="Harvests of a land commodity",
)
def list_harvests(
    land_commodity_id: int,
    service: HarvestService = Depends(get_harvest_service),
) -> List[HarvestRead]:
    return service.list_harvests(land_commodity_id)

@router.get(
    "/land_commodity/{land_commodity_id}/download",
    response_model=DownloadResponse,
    summary="Request harvest report",
)
def request_harvest_report(
    land_commodity_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    dispatcher: ReportDispatcher = Depends(get_report_dispatcher),
    request_id: str = Depends(get_request_id),
) -> DownloadResponse:
    logger.info(
        "Harvest report requested",
        land_commodity_id=land_commodity_id,
        start_date=start_date,
        end_date=end_date,
        request_id=request_id,
    )
    return dispatcher.request_harvest_report(land_commodity_id, start_date, end_date, request_id=request_id)

@router.get(
    "/land_commodity/{land_commodity_id}/download/file",
    response_class=FileResponse,
    summary="Download harvest report",
    responses={404: {"description": "Report not generated (yet)"}},
)
def download_harvest_report(
    land_commodity_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    resolver: ReportResolver = Depends(get_report_resolver),
) -> FileResponse:
    path = resolver.resolve_harvest(land_commodity_id, start_date, end_date)
    return FileResponse(path, media_type=REPORT_SETTINGS["mime_type"], filename=path.name)
