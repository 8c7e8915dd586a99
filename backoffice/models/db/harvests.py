"""SQLAlchemy models for lands, the commodities planted on them and their harvests."""
from __future__ import annotations
from datetime import date, datetime

from sqlalchemy import Integer, String, DateTime, Date, Float, ForeignKey
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.database import Base
from .commodities import Commodity, City


class Land(Base):
    __tablename__ = "lands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_name: Mapped[str] = mapped_column(String, nullable=False)
    land_area: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    land_commodities: Mapped[list["LandCommodity"]] = relationship("LandCommodity", back_populates="land")


class LandCommodity(Base):
    __tablename__ = "land_commodities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    land_id: Mapped[int] = mapped_column(Integer, ForeignKey("lands.id"), nullable=False, index=True)
    commodity_id: Mapped[int] = mapped_column(Integer, ForeignKey("commodities.id"), nullable=False, index=True)
    land_area: Mapped[float] = mapped_column(Float, default=0.0)

    land: Mapped[Land] = relationship("Land", back_populates="land_commodities")
    commodity: Mapped[Commodity] = relationship("Commodity")
    harvests: Mapped[list["Harvest"]] = relationship("Harvest", back_populates="land_commodity")


class Harvest(Base):
    __tablename__ = "harvests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    land_commodity_id: Mapped[int] = mapped_column(Integer, ForeignKey("land_commodities.id"), nullable=False, index=True)
    city_id: Mapped[int] = mapped_column(Integer, ForeignKey("cities.id"), nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[str] = mapped_column(String, default="kg")
    harvest_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    land_commodity: Mapped[LandCommodity] = relationship("LandCommodity", back_populates="harvests")
    city: Mapped[City] = relationship("City")
