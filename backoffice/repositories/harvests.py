"""Data access for harvests and the entities a harvest hangs off."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from backoffice.models.db import City, Commodity, Harvest, LandCommodity


class HarvestRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, harvest: Harvest) -> Harvest:
        self.db.add(harvest)
        self.db.flush()
        return harvest

    def find_by_land_commodity(self, land_commodity_id: int) -> list[Harvest]:
        return (
            self.db.query(Harvest)
            .filter(Harvest.land_commodity_id == land_commodity_id, Harvest.deleted_at.is_(None))
            .order_by(Harvest.harvest_date.asc(), Harvest.id.asc())
            .all()
        )


class ReferenceRepository:
    """Lookups of the reference entities other usecases validate against."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_commodity(self, commodity_id: int) -> Optional[Commodity]:
        return self.db.get(Commodity, commodity_id)

    def find_city(self, city_id: int) -> Optional[City]:
        return self.db.get(City, city_id)

    def find_land_commodity(self, land_commodity_id: int) -> Optional[LandCommodity]:
        return self.db.get(LandCommodity, land_commodity_id)


__all__ = ["HarvestRepository", "ReferenceRepository"]
