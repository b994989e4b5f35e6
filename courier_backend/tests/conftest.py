"""
Centralized Test Configuration.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from courier_backend.app.main import app
from courier_backend.app.db.session import get_db, Base
from courier_backend.app.core.identity import create_identity_token
from courier_backend.app.core.reliability import CircuitBreaker
from courier_backend.app.models.enums import UserRole
from courier_backend.app.models.user import User
from courier_backend.app.models.rider_enums import RiderStatus
from courier_backend.app.services import rider_directory
from courier_backend.app.services.payment_gateway import StripePaymentGateway, get_payment_gateway

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class StripeStub:
    """Records payment-intent requests and answers like Stripe would."""

    def __init__(self):
        self.requests = []
        self.fail_with = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.requests.append({"path": request.url.path, "form": form, "headers": request.headers})
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"error": {"message": "boom"}})
        return httpx.Response(
            200,
            json={"id": "pi_123", "client_secret": f"pi_123_secret_{form['amount']}"},
        )


@pytest.fixture
def stripe_stub():
    return StripeStub()


@pytest.fixture(autouse=True)
def apply_overrides(stripe_stub):
    """Route the app at the test database and a stubbed Stripe."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    gateway = StripePaymentGateway(
        secret_key="sk_test_123",
        circuit_breaker=CircuitBreaker(failure_threshold=2, reset_timeout=60),
        transport=httpx.MockTransport(stripe_stub.handler),
    )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def lenient_client():
    """Client that returns 500 responses instead of re-raising app errors."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Fresh sessions for reading state back without a stale identity map."""
    return TestingSessionLocal


def bearer(email: str) -> dict:
    return {"Authorization": f"Bearer {create_identity_token(email)}"}


@pytest.fixture
def bearer_for():
    """Factory: email -> Authorization header dict."""
    return bearer


@pytest.fixture
def auth_headers():
    return bearer("customer@example.com")


@pytest.fixture
async def admin_headers(db_session):
    db_session.add(User(email="admin@example.com", role=UserRole.ADMIN))
    await db_session.commit()
    return bearer("admin@example.com")


@pytest.fixture
async def active_rider(db_session):
    rider = await rider_directory.register_rider(db_session, {
        "name": "Rahim Uddin",
        "email": "rider@example.com",
        "phone": "01700000000",
        "age": 27,
        "region": "Dhaka",
        "district": "Dhaka",
        "nid": "1990123456789",
        "bike_brand": "Honda",
        "bike_registration": "DHAKA-METRO-LA-1234",
    })
    await rider_directory.set_status(db_session, rider.id, RiderStatus.ACTIVE)
    return rider


@pytest.fixture
def parcel_payload():
    def build(**overrides):
        payload = {
            "type": "non-document",
            "title": "Books",
            "weight": 2.5,
            "cost": 150.0,
            "sender_name": "Alice",
            "sender_contact": "01711111111",
            "sender_region": "Dhaka",
            "sender_center": "Mirpur",
            "sender_address": "House 1, Road 2",
            "pickup_instruction": "Call before pickup",
            "receiver_name": "Bob",
            "receiver_contact": "01822222222",
            "receiver_region": "Chattogram",
            "receiver_center": "Agrabad",
            "receiver_address": "Flat 3B, Agrabad C/A",
            "delivery_instruction": None,
        }
        payload.update(overrides)
        return payload
    return build
