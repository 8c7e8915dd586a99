"""
Price endpoints: CRUD, revision history and history report download.
"""
import time
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import FileResponse

from backoffice.api.deps import (
    get_price_service,
    get_report_dispatcher,
    get_report_resolver,
    get_request_id,
)
from backoffice.config import PAGINATION_SETTINGS, REPORT_SETTINGS
from backoffice.models.schemas import (
    DownloadResponse,
    PaginatedResponse,
    PriceCreate,
    PriceHistoryRead,
    PriceRead,
    PriceUpdate,
)
from backoffice.services.prices import PriceService
from backoffice.services.report_dispatcher import ReportDispatcher
from backoffice.services.report_resolver import ReportResolver
from backoffice.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.post(
    "/",
    response_model=PriceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create price",
    description="Create the live price of a commodity in a city",
)
def create_price(
    payload: PriceCreate,
    service: PriceService = Depends(get_price_service),
    request_id: str = Depends(get_request_id),
) -> PriceRead:
    logger.info(
        "Price creation started",
        commodity_id=payload.commodity_id,
        city_id=payload.city_id,
        request_id=request_id,
    )
    return service.create_price(payload, request_id=request_id)

@router.get("/", response_model=PaginatedResponse[PriceRead], summary="List prices")
def list_prices(
    page: int = Query(1, ge=1),
    limit: int = Query(PAGINATION_SETTINGS["default_limit"], ge=1, le=PAGINATION_SETTINGS["max_limit"]),
    service: PriceService = Depends(get_price_service),
) -> PaginatedResponse[PriceRead]:
    start_time = time.time()
    result = service.list_prices(page, limit)
    log_performance(
        operation="list_prices",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"page": page, "limit": limit, "returned": len(result.data)},
    )
    return result

@router.get("/commodity/{commodity_id}", response_model=List[PriceRead], summary="Prices of a commodity")
def get_prices_by_commodity(commodity_id: int, service: PriceService = Depends(get_price_service)) -> List[PriceRead]:
    return service.get_prices_by_commodity(commodity_id)

@router.get("/city/{city_id}", response_model=List[PriceRead], summary="Prices in a city")
def get_prices_by_city(city_id: int, service: PriceService = Depends(get_price_service)) -> List[PriceRead]:
    return service.get_prices_by_city(city_id)

@router.get(
    "/commodity/{commodity_id}/city/{city_id}",
    response_model=PriceRead,
    summary="Live price of a commodity in a city",
)
def get_price_by_commodity_and_city(
    commodity_id: int,
    city_id: int,
    service: PriceService = Depends(get_price_service),
) -> PriceRead:
    return service.get_price_by_commodity_and_city(commodity_id, city_id)

@router.get(
    "/history/commodity/{commodity_id}/city/{city_id}",
    response_model=List[PriceHistoryRead],
    summary="Price history",
    description="Superseded values oldest first; the last entry is the live price",
)
def get_price_history(
    commodity_id: int,
    city_id: int,
    service: PriceService = Depends(get_price_service),
) -> List[PriceHistoryRead]:
    return service.get_price_history(commodity_id, city_id)

@router.get(
    "/history/commodity/{commodity_id}/city/{city_id}/download",
    response_model=DownloadResponse,
    summary="Request price history report",
    description="Queues report generation and returns the URL to poll for the file",
)
def request_price_history_report(
    commodity_id: int,
    city_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    dispatcher: ReportDispatcher = Depends(get_report_dispatcher),
    request_id: str = Depends(get_request_id),
) -> DownloadResponse:
    logger.info(
        "Price history report requested",
        commodity_id=commodity_id,
        city_id=city_id,
        start_date=start_date,
        end_date=end_date,
        request_id=request_id,
    )
    return dispatcher.request_price_history_report(
        commodity_id, city_id, start_date, end_date, request_id=request_id
    )

@router.get(
    "/history/commodity/{commodity_id}/city/{city_id}/download/file",
    response_class=FileResponse,
    summary="Download price history report",
    responses={404: {"description": "Report not generated (yet)"}},
)
def download_price_history_report(
    commodity_id: int,
    city_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    resolver: ReportResolver = Depends(get_report_resolver),
) -> FileResponse:
    path = resolver.resolve_price_history(commodity_id, city_id, start_date, end_date)
    return FileResponse(path, media_type=REPORT_SETTINGS["mime_type"], filename=path.name)

@router.get("/{price_id}", response_model=PriceRead, summary="Get price")
def get_price(price_id: int, service: PriceService = Depends(get_price_service)) -> PriceRead:
    return service.get_price(price_id)

@router.put(
    "/{price_id}",
    response_model=PriceRead,
    summary="Revise price",
    description="Stores the current value in the price history and applies the new one",
)
def update_price(
    price_id: int,
    payload: PriceUpdate,
    service: PriceService = Depends(get_price_service),
    request_id: str = Depends(get_request_id),
) -> PriceRead:
    start_time = time.time()
    result = service.update_price(price_id, payload.price, request_id=request_id)
    log_performance(
        operation="update_price",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"price_id": price_id},
    )
    return result

@router.delete("/{price_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete price")
def delete_price(
    price_id: int,
    service: PriceService = Depends(get_price_service),
    request_id: str = Depends(get_request_id),
) -> Response:
    service.delete_price(price_id, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.patch("/{price_id}/restore", response_model=PriceRead, summary="Restore deleted price")
def restore_price(
    price_id: int,
    service: PriceService = Depends(get_price_service),
    request_id: str = Depends(get_request_id),
) -> PriceRead:
    return service.restore_price(price_id, request_id=request_id)
