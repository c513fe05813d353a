"""
Centralized Test Configuration.
"""

from datetime import timedelta
from typing import Optional

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from taximeter.app.main import app
from taximeter.app.db.session import get_db, Base
from taximeter.app.core.dependencies import get_compliance_dispatcher
from taximeter.app.core.jwt import create_session_token
from taximeter.app.core.redis_client import get_redis
from taximeter.app.core.security import get_password_hash
from taximeter.app.models.company import Company
from taximeter.app.models.driver import Driver
from taximeter.app.models.enums import AccountStatus, UserRole
from taximeter.app.models.user import User
from taximeter.app.models.vehicle import Vehicle
from taximeter.app.services.compliance_dispatcher import ComplianceDispatcher
from taximeter.app.services.compliance_reporter import ComplianceReporter
import taximeter.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
REGULATOR_BASE_URL = "https://regulator.test/api"
DEFAULT_PASSWORD = "secret123"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.published = []
        self.fail_publish = False

    async def ping(self):
        return True

    async def publish(self, channel, message):
        if self.fail_publish:
            raise ConnectionError("redis unavailable")
        self.published.append((channel, message))
        return 1

    async def flushdb(self):
        self.published = []
        self.fail_publish = False


class FakeRegulator:
    """Stands in for the government API behind an httpx.MockTransport."""

    def __init__(self):
        self.status_code = 200
        self.body = {"status": "registered"}
        self.text: Optional[str] = None
        self.error: Optional[Exception] = None
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.body)


mock_redis = MockRedis()


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await mock_redis.flushdb()
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis

    yield

    redis_client_module.redis_client = original_client
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def redis_mock():
    return mock_redis


@pytest.fixture
def regulator():
    return FakeRegulator()


@pytest.fixture
async def regulator_client(regulator):
    async with httpx.AsyncClient(transport=httpx.MockTransport(regulator.handler)) as http_client:
        yield http_client


@pytest.fixture
def reporter(regulator_client):
    return ComplianceReporter(regulator_client, base_url=REGULATOR_BASE_URL, api_key="test-regulator-key")


@pytest.fixture
async def dispatcher(reporter):
    compliance_dispatcher = ComplianceDispatcher(TestingSessionLocal, reporter, workers=2, maxsize=100)
    compliance_dispatcher.start()
    yield compliance_dispatcher
    await compliance_dispatcher.stop()


@pytest.fixture
async def client(dispatcher):
    """Async client for testing."""
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_compliance_dispatcher] = lambda: dispatcher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def fetch():
    """Load a fresh copy of a row, bypassing any session identity map."""
    async def _fetch(model, ident):
        async with TestingSessionLocal() as session:
            return await session.get(model, ident)
    return _fetch


@pytest.fixture
def make_driver(db_session):
    """
    Factory creating a company, an optional vehicle, a user and a driver.

    Returns the Driver row; ``driver.email`` is attached for convenience.
    """
    counter = {"n": 0}

    async def _make_driver(
        email: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        company_status: AccountStatus = AccountStatus.ACTIVE,
        driver_status: AccountStatus = AccountStatus.ACTIVE,
        with_vehicle: bool = True,
        company: Optional[Company] = None,
    ) -> Driver:
        counter["n"] += 1
        n = counter["n"]

        if company is None:
            company = Company(name=f"Taxi Co {n}", taxi_license_number=f"TC-{n:03d}", status=company_status)
            db_session.add(company)
            await db_session.flush()

        vehicle = None
        if with_vehicle:
            vehicle = Vehicle(company_id=company.id, license_plate=f"TX-{n:04d}", brand="Toyota", model="Prius", color="White")
            db_session.add(vehicle)
            await db_session.flush()

        user = User(
            email=email or f"driver{n}@brusselstaxi.be",
            name=f"Driver {n}",
            hashed_password=get_password_hash(password),
            role=UserRole.DRIVER,
        )
        db_session.add(user)
        await db_session.flush()

        driver = Driver(
            user_id=user.id,
            company_id=company.id,
            vehicle_id=vehicle.id if vehicle else None,
            first_name="Driver",
            last_name=str(n),
            phone=f"+32 470 00 00 {n:02d}",
            taxi_driver_license=f"DL-{n:03d}",
            status=driver_status,
        )
        db_session.add(driver)
        await db_session.commit()

        driver.email = user.email
        return driver

    return _make_driver


def token_for(driver: Driver, expires_delta: Optional[timedelta] = None) -> str:
    """Session token for a driver without going through the login endpoint."""
    return create_session_token(
        {
            "sub": str(driver.user_id),
            "user_id": driver.user_id,
            "driver_id": driver.id,
            "vehicle_id": driver.vehicle_id,
            "company_id": driver.company_id,
            "role": UserRole.DRIVER.value,
            "device_id": "meter-test",
        },
        expires_delta=expires_delta,
    )


@pytest.fixture
def auth_headers():
    def _auth_headers(driver: Driver, expires_delta: Optional[timedelta] = None) -> dict:
        return {"Authorization": f"Bearer {token_for(driver, expires_delta)}"}
    return _auth_headers
