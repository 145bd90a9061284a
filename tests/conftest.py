"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator, List
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from delivery_shield.api.main import create_app
from delivery_shield.api.dependencies import get_ledger, get_reasoning_client, get_transfer_client
from delivery_shield.domain.exceptions import ExplanationFailure
from delivery_shield.domain.models import (
    ComparisonOperator,
    DeliveryOrder,
    EventType,
    MetricType,
    OrderItem,
    OrderStatus,
    PolicyCondition,
    RefundPolicy,
    SystemEvent,
    TransferResult,
)
from delivery_shield.infrastructure.database.models import Base
from delivery_shield.infrastructure.database.repositories import seed_sample_policies
from delivery_shield.infrastructure.database.session import get_db
from delivery_shield.infrastructure.embeddings import HashingEmbedder
from delivery_shield.services.ledger import InMemoryLedger


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

BASE_TS = 1_700_000_000_000
WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """Test database holding the default policy corpus"""
    seed_sample_policies(db, HashingEmbedder())
    return db


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def gateway() -> AsyncMock:
    """Transfer gateway that succeeds with a fixed transaction hash"""
    mock = AsyncMock()
    mock.transfer.return_value = TransferResult(success=True, transaction_ref="0xmockhash123")
    return mock


@pytest.fixture
def failing_reasoner() -> AsyncMock:
    mock = AsyncMock()
    mock.explain.side_effect = ExplanationFailure("Reasoning provider is not configured")
    return mock


@pytest.fixture
def client(seeded_db: Session, ledger: InMemoryLedger, gateway: AsyncMock, failing_reasoner: AsyncMock) -> TestClient:
    """Create FastAPI test client with test database, fresh ledger and mocked collaborators"""
    app = create_app()

    def override_get_db():
        try:
            yield seeded_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_transfer_client] = lambda: gateway
    app.dependency_overrides[get_reasoning_client] = lambda: failing_reasoner
    return TestClient(app)


@pytest.fixture
def sample_order() -> DeliveryOrder:
    """Delivered order worth $25.00"""
    return DeliveryOrder(
        order_id="order-123",
        customer_id="user-123",
        restaurant_id="rest-9",
        items=[OrderItem(name="Pizza", quantity=1, price=15.00), OrderItem(name="Salad", quantity=1, price=10.00)],
        total_amount=Decimal("25.00"),
        delivery_address="123 Main St",
        order_timestamp=BASE_TS,
        delivery_timestamp=BASE_TS + 3_600_000,
        status=OrderStatus.DELIVERED,
    )


@pytest.fixture
def late_delivery_events() -> List[SystemEvent]:
    """Order history with a 33-minute delay"""
    return [
        SystemEvent("order-123", BASE_TS, EventType.ORDER_CREATED),
        SystemEvent("order-123", BASE_TS + 60_000, EventType.DELIVERY_STARTED, latency_ms=500),
        SystemEvent("order-123", BASE_TS + 120_000, EventType.DELIVERY_DELAYED, latency_ms=2_000_000),
        SystemEvent("order-123", BASE_TS + 2_200_000, EventType.DELIVERY_COMPLETED),
    ]


@pytest.fixture
def uneventful_events() -> List[SystemEvent]:
    return [
        SystemEvent("order-123", BASE_TS, EventType.ORDER_CREATED),
        SystemEvent("order-123", BASE_TS + 600_000, EventType.DELIVERY_COMPLETED, latency_ms=600_000),
    ]


@pytest.fixture
def sample_policies() -> List[RefundPolicy]:
    """The default corpus, without embeddings"""
    return [
        RefundPolicy(
            id="policy-1",
            title="Late Delivery Refund",
            description="Full refund for deliveries delayed by more than 30 minutes",
            conditions=[PolicyCondition(MetricType.DELIVERY_LATENCY, 1_800_000, ComparisonOperator.GREATER_THAN)],
            refund_percentage=100,
        ),
        RefundPolicy(
            id="policy-2",
            title="Cold Food Partial Refund",
            description="Partial refund for cold food delivery",
            conditions=[PolicyCondition(MetricType.TEMPERATURE, 50, ComparisonOperator.LESS_THAN)],
            refund_percentage=50,
        ),
        RefundPolicy(
            id="policy-3",
            title="System Error Refund",
            description="Partial refund for orders with system errors",
            conditions=[PolicyCondition(MetricType.ERROR_COUNT, 2, ComparisonOperator.GREATER_THAN)],
            refund_percentage=30,
        ),
    ]
