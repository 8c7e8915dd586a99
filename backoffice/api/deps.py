"""
Dependencies for database sessions, shared infrastructure and services.

The cache backend and the report publisher are created once in the
application lifespan and stored on ``app.state``; tests replace them through
``app.dependency_overrides``.
"""
from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backoffice.cache.base import Cache
from backoffice.config import REPORT_SETTINGS
from backoffice.database import SessionLocal
from backoffice.jobs.broker import ReportPublisher
from backoffice.services.harvests import HarvestService
from backoffice.services.prices import PriceService
from backoffice.services.report_dispatcher import ReportDispatcher
from backoffice.services.report_resolver import ReportResolver
from backoffice.utils import get_logger
from backoffice.utils.observability import current_request_id

logger = get_logger(__name__)

def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def get_cache(request: Request) -> Cache:
    return request.app.state.cache

def get_publisher(request: Request) -> ReportPublisher:
    return request.app.state.report_publisher

def get_reports_dir() -> str:
    return REPORT_SETTINGS["reports_dir"]

def get_request_id(request: Request) -> str:
    return current_request_id(request.state, request.headers)

def get_price_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> PriceService:
    return PriceService(db, cache)

def get_harvest_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> HarvestService:
    return HarvestService(db, cache)

def get_report_dispatcher(
    db: Session = Depends(get_db),
    publisher: ReportPublisher = Depends(get_publisher),
) -> ReportDispatcher:
    return ReportDispatcher(db, publisher)

def get_report_resolver(reports_dir: str = Depends(get_reports_dir)) -> ReportResolver:
    return ReportResolver(reports_dir)
