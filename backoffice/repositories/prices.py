"""Data access for prices and price history.

Repositories only ``add``/``flush``; committing belongs to the caller's unit
of work (``backoffice.services.transaction``).
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.models.db import Price, PriceHistory
from backoffice.utils.time import utc_now


class PriceRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _live(self):
        return self.db.query(Price).filter(Price.deleted_at.is_(None))

    def find_by_id(self, price_id: int) -> Optional[Price]:
        return self._live().filter(Price.id == price_id).first()

    def find_deleted_by_id(self, price_id: int) -> Optional[Price]:
        return self.db.query(Price).filter(Price.id == price_id, Price.deleted_at.isnot(None)).first()

    def find_all(self, *, offset: int, limit: int) -> list[Price]:
        return self._live().order_by(Price.id.asc()).offset(offset).limit(limit).all()

    def count(self) -> int:
        return int(self.db.query(func.count(Price.id)).filter(Price.deleted_at.is_(None)).scalar() or 0)

    def find_by_commodity(self, commodity_id: int) -> list[Price]:
        return self._live().filter(Price.commodity_id == commodity_id).order_by(Price.id.asc()).all()

    def find_by_city(self, city_id: int) -> list[Price]:
        return self._live().filter(Price.city_id == city_id).order_by(Price.id.asc()).all()

    def find_by_commodity_and_city(self, commodity_id: int, city_id: int) -> Optional[Price]:
        return self._live().filter(Price.commodity_id == commodity_id, Price.city_id == city_id).first()

    def create(self, price: Price) -> Price:
        self.db.add(price)
        self.db.flush()
        return price

    def update_value(self, price: Price, value: float) -> Price:
        price.price = value
        price.updated_at = utc_now()
        self.db.flush()
        return price

    def soft_delete(self, price: Price) -> None:
        price.deleted_at = utc_now()
        self.db.flush()

    def restore(self, price: Price) -> None:
        price.deleted_at = None
        self.db.flush()

    def refresh(self, price: Price) -> Price:
        self.db.refresh(price)
        return price


class PriceHistoryRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, history: PriceHistory) -> PriceHistory:
        self.db.add(history)
        self.db.flush()
        return history

    def find_by_commodity_and_city(self, commodity_id: int, city_id: int) -> list[PriceHistory]:
        """Snapshots of a pair in insertion order (oldest first)."""
        return (
            self.db.query(PriceHistory)
            .filter(PriceHistory.commodity_id == commodity_id, PriceHistory.city_id == city_id)
            .order_by(PriceHistory.id.asc())
            .all()
        )


__all__ = ["PriceRepository", "PriceHistoryRepository"]
