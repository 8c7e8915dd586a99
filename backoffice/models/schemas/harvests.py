"""
Pydantic schemas for harvest records.
"""
from datetime import date, datetime
from pydantic import BaseModel, Field, ConfigDict

class HarvestCreate(BaseModel):
    land_commodity_id: int = Field(gt=0)
    city_id: int = Field(gt=0)
    quantity: float = Field(ge=0)
    unit: str = Field("kg", min_length=1, max_length=20)
    harvest_date: date

class HarvestRead(BaseModel):
    id: int
    land_commodity_id: int
    city_id: int
    quantity: float
    unit: str
    harvest_date: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
