"""Read models for the report worker.

Rows are re-read from the primary store at render time; the job message only
carries identifiers and the day range.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from backoffice.models.db import Harvest, LandCommodity, Price, PriceHistory
from backoffice.utils.time import day_range


@dataclass(slots=True)
class PriceReportRow:
    recorded_at: datetime
    price: float
    unit: str
    is_current: bool


@dataclass(slots=True)
class PriceHistoryReport:
    commodity_name: str
    city_name: str
    rows: list[PriceReportRow]


@dataclass(slots=True)
class HarvestReportRow:
    harvest_date: date
    quantity: float
    unit: str
    city_name: str


@dataclass(slots=True)
class HarvestReport:
    commodity_name: str
    owner_name: str
    rows: list[HarvestReportRow]


class ReportRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_price_history_report(
        self, commodity_id: int, city_id: int, start: date, end: date
    ) -> Optional[PriceHistoryReport]:
        """History snapshots created inside the day range, oldest first, then the live price.

        Each row is dated by its ``updated_at``: the moment that value took
        effect. Returns None when the pair has no live price.
        """
        current = (
            self.db.query(Price)
            .options(selectinload(Price.commodity), selectinload(Price.city))
            .filter(Price.commodity_id == commodity_id, Price.city_id == city_id, Price.deleted_at.is_(None))
            .first()
        )
        if current is None:
            return None

        lower, upper = day_range(start, end)
        histories = (
            self.db.query(PriceHistory)
            .filter(
                PriceHistory.commodity_id == commodity_id,
                PriceHistory.city_id == city_id,
                PriceHistory.created_at >= lower,
                PriceHistory.created_at <= upper,
            )
            .order_by(PriceHistory.id.asc())
            .all()
        )
        rows = [PriceReportRow(h.updated_at, h.price, h.unit, False) for h in histories]
        rows.append(PriceReportRow(current.updated_at or current.created_at, current.price, current.unit, True))
        return PriceHistoryReport(current.commodity.name, current.city.name, rows)

    def get_harvest_report(self, land_commodity_id: int, start: date, end: date) -> Optional[HarvestReport]:
        """Harvests of one land commodity harvested inside the day range, oldest first.

        Returns None when the land commodity is unknown or nothing was harvested.
        """
        land_commodity = (
            self.db.query(LandCommodity)
            .options(selectinload(LandCommodity.commodity), selectinload(LandCommodity.land))
            .filter(LandCommodity.id == land_commodity_id)
            .first()
        )
        if land_commodity is None:
            return None

        harvests = (
            self.db.query(Harvest)
            .options(selectinload(Harvest.city))
            .filter(
                Harvest.land_commodity_id == land_commodity_id,
                Harvest.deleted_at.is_(None),
                Harvest.harvest_date >= start,
                Harvest.harvest_date <= end,
            )
            .order_by(Harvest.harvest_date.asc(), Harvest.id.asc())
            .all()
        )
        if not harvests:
            return None
        rows = [HarvestReportRow(h.harvest_date, h.quantity, h.unit, h.city.name) for h in harvests]
        return HarvestReport(land_commodity.commodity.name, land_commodity.land.owner_name, rows)


__all__ = [
    "PriceReportRow",
    "PriceHistoryReport",
    "HarvestReportRow",
    "HarvestReport",
    "ReportRepository",
]
