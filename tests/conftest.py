import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path
import pytest
from fastapi.testclient import TestClient
from kombu import Connection
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Broker and log settings are read at import time; point them at test values first.
os.environ.setdefault("BROKER_URL", "memory://")
os.environ.setdefault("LOG_FILE", "logs/test.log")

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from backoffice.main import app  # type: ignore
from backoffice.database import Base  # type: ignore
from backoffice.api import deps  # type: ignore
"""Pytest fixtures and factories.

All model modules are imported through ``backoffice.models.db`` before
``create_all`` so relationship targets exist when mappers configure.
"""
from backoffice.models.db import City, Commodity, Harvest, Land, LandCommodity, Price
from backoffice.cache.memory_cache import InMemoryCache
from backoffice.jobs.broker import ReportPublisher
from backoffice.jobs.worker_reports import ReportWorker
from backoffice.services.report_renderer import ReportRenderer

# File-based SQLite so the worker's sessions and the API's sessions see the same rows.
SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///./test_backoffice.db"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

FIXED_NOW = datetime(2023, 10, 28, 12, 0, 0, tzinfo=timezone.utc)

@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    try:
        os.remove("test_backoffice.db")
    except OSError:
        pass

@pytest.fixture(autouse=True)
def _clean_tables(create_test_db):
    """Every test starts from empty tables."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield

@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db

@pytest.fixture()
def cache():
    cache = InMemoryCache()
    app.state.cache = cache  # type: ignore[attr-defined]
    app.dependency_overrides[deps.get_cache] = lambda: cache
    yield cache
    cache.purge()

@pytest.fixture()
def publisher():
    """Publisher on kombu's in-process memory transport, with empty report queues."""
    publisher = ReportPublisher(url="memory://")
    with Connection("memory://") as conn:
        channel = conn.default_channel
        for queue in publisher.queues.values():
            bound = queue(channel)
            bound.declare()
            bound.purge()
    app.state.report_publisher = publisher  # type: ignore[attr-defined]
    app.dependency_overrides[deps.get_publisher] = lambda: publisher
    return publisher

@pytest.fixture()
def reports_dir(tmp_path):
    path = tmp_path / "reports"
    path.mkdir()
    app.dependency_overrides[deps.get_reports_dir] = lambda: str(path)
    return path

@pytest.fixture()
def renderer(reports_dir):
    return ReportRenderer(str(reports_dir), clock=lambda: FIXED_NOW)

@pytest.fixture()
def worker(renderer):
    with Connection("memory://") as conn:
        yield ReportWorker(conn, session_factory=TestingSessionLocal, renderer=renderer)

@pytest.fixture()
def client(cache, publisher, reports_dir):
    return TestClient(app)

# ---------- Data factory helpers ----------

@pytest.fixture()
def commodity_factory(db_session):
    counter = {"n": 0}
    def _create(name: str | None = None, unit: str = "kg"):
        counter["n"] += 1
        c = Commodity(name=name or f"Commodity {counter['n']}", unit=unit)
        db_session.add(c)
        db_session.commit()
        db_session.refresh(c)
        return c
    return _create

@pytest.fixture()
def city_factory(db_session):
    counter = {"n": 0}
    def _create(name: str | None = None):
        counter["n"] += 1
        city = City(name=name or f"City {counter['n']}")
        db_session.add(city)
        db_session.commit()
        db_session.refresh(city)
        return city
    return _create

@pytest.fixture()
def price_factory(db_session, commodity_factory, city_factory):
    def _create(
        value: float = 10000.0,
        *,
        commodity: Commodity | None = None,
        city: City | None = None,
        created_at: datetime | None = None,
    ):
        commodity = commodity or commodity_factory()
        city = city or city_factory()
        price = Price(commodity_id=commodity.id, city_id=city.id, price=value, unit="kg")
        if created_at is not None:
            price.created_at = created_at
            price.updated_at = created_at
        db_session.add(price)
        db_session.commit()
        db_session.refresh(price)
        return price
    return _create

@pytest.fixture()
def land_commodity_factory(db_session, commodity_factory):
    def _create(owner_name: str = "Budi", commodity: Commodity | None = None):
        commodity = commodity or commodity_factory("Rice")
        land = Land(owner_name=owner_name, land_area=2.5)
        db_session.add(land)
        db_session.flush()
        lc = LandCommodity(land_id=land.id, commodity_id=commodity.id, land_area=1.5)
        db_session.add(lc)
        db_session.commit()
        db_session.refresh(lc)
        return lc
    return _create

@pytest.fixture()
def harvest_factory(db_session, city_factory):
    def _create(land_commodity: LandCommodity, harvest_date: date, quantity: float = 100.0, city: City | None = None):
        city = city or city_factory()
        h = Harvest(
            land_commodity_id=land_commodity.id,
            city_id=city.id,
            quantity=quantity,
            unit="kg",
            harvest_date=harvest_date,
        )
        db_session.add(h)
        db_session.commit()
        db_session.refresh(h)
        return h
    return _create
