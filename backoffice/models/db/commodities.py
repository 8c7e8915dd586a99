"""SQLAlchemy models for traded commodities and the cities prices are quoted in."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.database import Base

if TYPE_CHECKING:  # pragma: no cover
    from .prices import Price


class Commodity(Base):
    __tablename__ = "commodities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, unique=True, index=True)
    unit: Mapped[str] = mapped_column(String, default="kg")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    prices: Mapped[list["Price"]] = relationship("Price", back_populates="commodity")


class City(Base):
    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, unique=True, index=True)
    province: Mapped[str | None] = mapped_column(String, nullable=True)

    prices: Mapped[list["Price"]] = relationship("Price", back_populates="city")
