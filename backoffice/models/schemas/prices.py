"""
Pydantic schemas for prices and price history.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

class PriceCreate(BaseModel):
    commodity_id: int = Field(gt=0)
    city_id: int = Field(gt=0)
    price: float = Field(ge=0)
    unit: str = Field("kg", min_length=1, max_length=20)

    model_config = ConfigDict(json_schema_extra={
        "example": {"commodity_id": 1, "city_id": 3, "price": 15000, "unit": "kg"}
    })

class PriceUpdate(BaseModel):
    price: float = Field(ge=0)

class PriceRead(BaseModel):
    id: int
    commodity_id: int
    city_id: int
    price: float
    unit: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class PriceHistoryRead(BaseModel):
    """One entry of a price timeline.

    Historical rows carry ``is_current=False``; the trailing entry synthesized
    from the live price carries ``is_current=True`` and the live price's id.
    """
    id: int
    commodity_id: int
    city_id: int
    price: float
    unit: str
    created_at: datetime
    updated_at: datetime
    is_current: bool = False

    model_config = ConfigDict(from_attributes=True)
