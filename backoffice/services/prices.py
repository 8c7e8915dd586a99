"""Price usecases, including the revision engine.

``update_price`` is the heart of this module. Inside one unit of work it:
1. Loads the live price (``NotFoundError`` if absent or soft-deleted).
2. Inserts a PriceHistory snapshot of the row as it is now, keeping the
   original ``created_at`` / ``updated_at``.
3. Applies the new value in place and re-reads the row.

Either both rows change or neither does. Once the unit has committed every
cached entry under the ``price`` prefix is invalidated; if that fails the
caller gets ``CacheInvalidationError`` even though the new value is stored.

All writes (create, update, delete, restore) invalidate ``price`` exactly once
on success. List and history reads are cached for ``default_ttl_seconds``.
"""
from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Iterator, Optional

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from backoffice.cache.base import Cache
from backoffice.cache.read_through import ReadThroughCache
from backoffice.config import PAGINATION_SETTINGS
from backoffice.errors import AppError, InternalError, InvalidInputError, NotFoundError
from backoffice.models.db import Price, PriceHistory
from backoffice.models.schemas import PaginatedResponse, PriceCreate, PriceHistoryRead, PriceRead
from backoffice.repositories.harvests import ReferenceRepository
from backoffice.repositories.prices import PriceHistoryRepository, PriceRepository
from backoffice.services.transaction import TransactionManager
from backoffice.utils import get_logger, log_business_event

logger = get_logger(__name__)

PRICE_CACHE_PREFIX = "price"

_PAGE_ADAPTER = TypeAdapter(PaginatedResponse[PriceRead])
_HISTORY_ADAPTER = TypeAdapter(list[PriceHistoryRead])


def price_list_cache_key(page: int, limit: int) -> str:
    return f"price_list_page_{page}_limit_{limit}"


def price_history_cache_key(commodity_id: int, city_id: int) -> str:
    return f"price_history_{commodity_id}_{city_id}"


class PriceService:
    def __init__(self, db: Session, cache: Cache, *, ttl_seconds: Optional[int] = None) -> None:
        self.db = db
        self.tx = TransactionManager(db)
        self.prices = PriceRepository(db)
        self.history = PriceHistoryRepository(db)
        self.references = ReferenceRepository(db)
        self.cache = ReadThroughCache(cache, ttl_seconds=ttl_seconds)

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Session]:
        try:
            with self.tx.transaction() as db:
                yield db
        except AppError:
            raise
        except Exception as e:
            logger.error(f"{operation} failed", operation=operation, error=str(e), exc_info=True)
            raise InternalError(f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------ writes
    def create_price(self, payload: PriceCreate, *, request_id: Optional[str] = None) -> PriceRead:
        if self.references.find_commodity(payload.commodity_id) is None:
            raise NotFoundError(f"Commodity {payload.commodity_id} not found")
        if self.references.find_city(payload.city_id) is None:
            raise NotFoundError(f"City {payload.city_id} not found")
        if self.prices.find_by_commodity_and_city(payload.commodity_id, payload.city_id) is not None:
            raise InvalidInputError(
                "A live price already exists for this commodity and city",
                details={"commodity_id": payload.commodity_id, "city_id": payload.city_id},
            )

        with self._unit_of_work("price creation"):
            price = self.prices.create(
                Price(
                    commodity_id=payload.commodity_id,
                    city_id=payload.city_id,
                    price=payload.price,
                    unit=payload.unit,
                )
            )
            self.prices.refresh(price)
            result = PriceRead.model_validate(price)

        log_business_event("price_created", {"price_id": result.id, "price": result.price}, request_id)
        self.cache.invalidate(PRICE_CACHE_PREFIX)
        return result

    def update_price(self, price_id: int, new_value: float, *, request_id: Optional[str] = None) -> PriceRead:
        with self._unit_of_work("price update"):
            existing = self.prices.find_by_id(price_id)
            if existing is None:
                raise NotFoundError(f"Price {price_id} not found")

            previous_value = existing.price
            self.history.create(
                PriceHistory(
                    price_id=existing.id,
                    commodity_id=existing.commodity_id,
                    city_id=existing.city_id,
                    price=existing.price,
                    unit=existing.unit,
                    created_at=existing.created_at,
                    updated_at=existing.updated_at,
                )
            )
            self.prices.update_value(existing, new_value)
            updated = self.prices.refresh(existing)
            result = PriceRead.model_validate(updated)

        log_business_event(
            "price_revised",
            {"price_id": price_id, "previous_price": previous_value, "new_price": result.price},
            request_id,
        )
        self.cache.invalidate(PRICE_CACHE_PREFIX)
        return result

    def delete_price(self, price_id: int, *, request_id: Optional[str] = None) -> None:
        price = self.prices.find_by_id(price_id)
        if price is None:
            raise NotFoundError(f"Price {price_id} not found")
        with self._unit_of_work("price deletion"):
            self.prices.soft_delete(price)

        log_business_event("price_deleted", {"price_id": price_id}, request_id)
        self.cache.invalidate(PRICE_CACHE_PREFIX)

    def restore_price(self, price_id: int, *, request_id: Optional[str] = None) -> PriceRead:
        price = self.prices.find_deleted_by_id(price_id)
        if price is None:
            raise NotFoundError(f"Deleted price {price_id} not found")
        if self.prices.find_by_commodity_and_city(price.commodity_id, price.city_id) is not None:
            raise InvalidInputError(
                "Another live price exists for this commodity and city",
                details={"commodity_id": price.commodity_id, "city_id": price.city_id},
            )
        with self._unit_of_work("price restore"):
            self.prices.restore(price)
            result = PriceRead.model_validate(self.prices.refresh(price))

        log_business_event("price_restored", {"price_id": price_id}, request_id)
        self.cache.invalidate(PRICE_CACHE_PREFIX)
        return result

    # ------------------------------------------------------------------- reads
    def list_prices(self, page: int = 1, limit: Optional[int] = None) -> PaginatedResponse[PriceRead]:
        limit = limit or PAGINATION_SETTINGS["default_limit"]
        if page < 1 or limit < 1 or limit > PAGINATION_SETTINGS["max_limit"]:
            raise InvalidInputError(
                f"page must be >= 1 and limit between 1 and {PAGINATION_SETTINGS['max_limit']}"
            )

        key = price_list_cache_key(page, limit)
        cached = self.cache.load(key, _PAGE_ADAPTER)
        if cached is not None:
            return cached

        rows = self.prices.find_all(offset=(page - 1) * limit, limit=limit)
        total = self.prices.count()
        response = PaginatedResponse[PriceRead](
            total_rows=total,
            total_pages=math.ceil(total / limit),
            page=page,
            limit=limit,
            data=[PriceRead.model_validate(r) for r in rows],
        )
        self.cache.store(key, _PAGE_ADAPTER, response)
        return response

    def get_price(self, price_id: int) -> PriceRead:
        price = self.prices.find_by_id(price_id)
        if price is None:
            raise NotFoundError(f"Price {price_id} not found")
        return PriceRead.model_validate(price)

    def get_prices_by_commodity(self, commodity_id: int) -> list[PriceRead]:
        return [PriceRead.model_validate(p) for p in self.prices.find_by_commodity(commodity_id)]

    def get_prices_by_city(self, city_id: int) -> list[PriceRead]:
        return [PriceRead.model_validate(p) for p in self.prices.find_by_city(city_id)]

    def get_price_by_commodity_and_city(self, commodity_id: int, city_id: int) -> PriceRead:
        price = self.prices.find_by_commodity_and_city(commodity_id, city_id)
        if price is None:
            raise NotFoundError(f"No live price for commodity {commodity_id} in city {city_id}")
        return PriceRead.model_validate(price)

    def get_price_history(self, commodity_id: int, city_id: int) -> list[PriceHistoryRead]:
        """Every superseded value of the pair, oldest first, then the live price."""
        key = price_history_cache_key(commodity_id, city_id)
        cached = self.cache.load(key, _HISTORY_ADAPTER)
        if cached is not None:
            return cached

        current = self.prices.find_by_commodity_and_city(commodity_id, city_id)
        if current is None:
            raise NotFoundError(f"No live price for commodity {commodity_id} in city {city_id}")

        timeline = [PriceHistoryRead.model_validate(h) for h in self.history.find_by_commodity_and_city(commodity_id, city_id)]
        timeline.append(
            PriceHistoryRead(
                id=current.id,
                commodity_id=current.commodity_id,
                city_id=current.city_id,
                price=current.price,
                unit=current.unit,
                created_at=current.created_at,
                updated_at=current.updated_at,
                is_current=True,
            )
        )
        self.cache.store(key, _HISTORY_ADAPTER, timeline)
        return timeline


__all__ = [
    "PRICE_CACHE_PREFIX",
    "PriceService",
    "price_history_cache_key",
    "price_list_cache_key",
]
