"""Shared test fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import date, timedelta
from decimal import Decimal
import uuid

from wastewatch.database import Base
from wastewatch.dependencies import get_db
from wastewatch.main import app
from wastewatch.models.account import Account, AccountType
from wastewatch.models.category import Category
from wastewatch.models.alert import DetectionSettings
from wastewatch.services.ledger_service import record_transaction


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sample_account(db_session):
    """Create a sample account."""
    account = Account(id=str(uuid.uuid4()), name="Test Checking")
    account.account_type = AccountType.bank
    account.is_active = True

    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def other_account(db_session):
    account = Account(id=str(uuid.uuid4()), name="Credit Card", account_type=AccountType.credit)
    db_session.add(account)
    db_session.commit()
    db_session.refresh(account)
    return account


@pytest.fixture
def streaming_category(db_session):
    """Create a Streaming category."""
    category = Category(id=str(uuid.uuid4()), name="Streaming")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def dining_category(db_session):
    category = Category(id=str(uuid.uuid4()), name="Dining")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def detection_settings(db_session):
    """Create default detection settings."""
    settings = DetectionSettings(
        id=str(uuid.uuid4()),
        min_occurrences=2,
        price_increase_min_delta=Decimal("0.50"),
        price_increase_min_percent=Decimal("2.0"),
        anomaly_percent_threshold=Decimal("40.0"),
        anomaly_min_delta=Decimal("25.00"),
        anomaly_baseline_months=3,
        tip_ceiling_percent=Decimal("25.0"),
        alerts_enabled=True,
    )
    db_session.add(settings)
    db_session.commit()
    db_session.refresh(settings)
    return settings


@pytest.fixture
def add_charge(db_session, sample_account):
    """Record one expense on the sample account (or another)."""
    def _add(merchant, txn_date, amount, category=None, account=None, description=None):
        txn, _ = record_transaction(
            db_session,
            account_id=(account or sample_account).id,
            txn_date=txn_date,
            amount=-Decimal(str(amount)),
            description=description or f"{merchant.upper()} {txn_date.isoformat()}",
            merchant_normalized=merchant,
            category_id=category.id if category else None,
        )
        return txn
    return _add


@pytest.fixture
def add_monthly(add_charge):
    """Record `count` monthly charges, 30 days apart, ending on `last`."""
    def _add(merchant, last, amount, count=4, category=None, account=None):
        return [
            add_charge(merchant, last - timedelta(days=30 * i), amount, category=category, account=account)
            for i in reversed(range(count))
        ]
    return _add
