"""Report job payload structure (the message carried by the broker).

Only identifiers and a date range travel on the wire; the worker re-reads the
data when it renders, so a report reflects the database at render time.
"""
from __future__ import annotations

import enum
import uuid
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReportKind(str, enum.Enum):
    """Report type; the value doubles as the broker routing key."""
    PRICE_HISTORY = "price-history"
    HARVEST = "harvest"


class ReportJobMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: ReportKind
    commodity_id: Optional[int] = None
    city_id: Optional[int] = None
    land_commodity_id: Optional[int] = None
    start_date: date
    end_date: date
    # Log correlation only; retrieval never uses it.
    correlation_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    @model_validator(mode="after")
    def _check_shape(self) -> "ReportJobMessage":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        if self.kind is ReportKind.PRICE_HISTORY and (self.commodity_id is None or self.city_id is None):
            raise ValueError("price-history jobs need commodity_id and city_id")
        if self.kind is ReportKind.HARVEST and self.land_commodity_id is None:
            raise ValueError("harvest jobs need land_commodity_id")
        return self

    def identifiers(self) -> tuple[int, ...]:
        """Entity ids in the order they appear in the rendered file name."""
        if self.kind is ReportKind.PRICE_HISTORY:
            return (self.commodity_id, self.city_id)  # type: ignore[return-value]
        return (self.land_commodity_id,)  # type: ignore[return-value]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_payload(cls, payload: Any) -> "ReportJobMessage":
        if isinstance(payload, (bytes, bytearray, str)):
            return cls.model_validate_json(payload)
        return cls.model_validate(payload)


__all__ = ["ReportKind", "ReportJobMessage"]
