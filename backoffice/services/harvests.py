"""Harvest usecases: recording harvests and listing them per land commodity."""
from __future__ import annotations

from typing import Optional

from pydantic import TypeAdapter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.cache.base import Cache
from backoffice.cache.read_through import ReadThroughCache
from backoffice.errors import InternalError, NotFoundError
from backoffice.models.db import Harvest
from backoffice.models.schemas import HarvestCreate, HarvestRead
from backoffice.repositories.harvests import HarvestRepository, ReferenceRepository
from backoffice.services.transaction import TransactionManager
from backoffice.utils import get_logger, log_business_event

logger = get_logger(__name__)

HARVEST_CACHE_PREFIX = "harvest"

_HARVEST_LIST_ADAPTER = TypeAdapter(list[HarvestRead])


def harvest_list_cache_key(land_commodity_id: int) -> str:
    return f"harvest_land_commodity_{land_commodity_id}"


class HarvestService:
    def __init__(self, db: Session, cache: Cache, *, ttl_seconds: Optional[int] = None) -> None:
        self.tx = TransactionManager(db)
        self.harvests = HarvestRepository(db)
        self.references = ReferenceRepository(db)
        self.cache = ReadThroughCache(cache, ttl_seconds=ttl_seconds)

    def create_harvest(self, payload: HarvestCreate, *, request_id: Optional[str] = None) -> HarvestRead:
        if self.references.find_land_commodity(payload.land_commodity_id) is None:
            raise NotFoundError(f"Land commodity {payload.land_commodity_id} not found")
        if self.references.find_city(payload.city_id) is None:
            raise NotFoundError(f"City {payload.city_id} not found")

        try:
            with self.tx.transaction() as db:
                harvest = self.harvests.create(Harvest(**payload.model_dump()))
                db.refresh(harvest)
                result = HarvestRead.model_validate(harvest)
        except SQLAlchemyError as e:
            raise InternalError(f"harvest creation failed: {e}") from e

        log_business_event(
            "harvest_recorded",
            {"harvest_id": result.id, "land_commodity_id": result.land_commodity_id, "quantity": result.quantity},
            request_id,
        )
        self.cache.invalidate(HARVEST_CACHE_PREFIX)
        return result

    def list_harvests(self, land_commodity_id: int) -> list[HarvestRead]:
        key = harvest_list_cache_key(land_commodity_id)
        cached = self.cache.load(key, _HARVEST_LIST_ADAPTER)
        if cached is not None:
            return cached

        if self.references.find_land_commodity(land_commodity_id) is None:
            raise NotFoundError(f"Land commodity {land_commodity_id} not found")
        harvests = [HarvestRead.model_validate(h) for h in self.harvests.find_by_land_commodity(land_commodity_id)]
        self.cache.store(key, _HARVEST_LIST_ADAPTER, harvests)
        return harvests


__all__ = ["HARVEST_CACHE_PREFIX", "HarvestService", "harvest_list_cache_key"]
