"""SQLAlchemy models for current prices and their superseded snapshots."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.database import Base
from .commodities import Commodity, City


class Price(Base):
    """Current price of a commodity in a city.

    One live (``deleted_at IS NULL``) row per (commodity, city) is expected;
    the service enforces it on creation, the schema does not.
    """
    __tablename__ = "prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    commodity_id: Mapped[int] = mapped_column(Integer, ForeignKey("commodities.id"), nullable=False, index=True)
    city_id: Mapped[int] = mapped_column(Integer, ForeignKey("cities.id"), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String, default="kg")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    commodity: Mapped[Commodity] = relationship("Commodity", back_populates="prices")
    city: Mapped[City] = relationship("City", back_populates="prices")


class PriceHistory(Base):
    """Immutable snapshot of a Price taken when it was superseded.

    ``created_at`` / ``updated_at`` are copied from the superseded row, not
    stamped at insert time; ``superseded_at`` records when the snapshot was taken.
    """
    __tablename__ = "price_histories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    price_id: Mapped[int] = mapped_column(Integer, ForeignKey("prices.id"), nullable=False, index=True)
    commodity_id: Mapped[int] = mapped_column(Integer, ForeignKey("commodities.id"), nullable=False, index=True)
    city_id: Mapped[int] = mapped_column(Integer, ForeignKey("cities.id"), nullable=False, index=True)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String, default="kg")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    superseded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    commodity: Mapped[Commodity] = relationship("Commodity")
    city: Mapped[City] = relationship("City")
