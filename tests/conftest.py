import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_eventhub.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-1234")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test")

import app.models  # noqa: F401
from app.core.exceptions import GatewayUnavailable
from app.core.security import create_access_token
from app.db.base_class import Base
from app.db.session import get_db
from app.main import app
from app.models.category import Category
from app.models.event import Event, EventStatus, TicketTier
from app.models.user import User, UserRole
from app.services.payment_gateway import get_payment_gateway
from app.services.payment_service import PaymentConfig


class FakeGateway:
    """Records create_order calls instead of talking to Razorpay."""

    key_id = "rzp_test_key"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def create_order(self, amount_minor: int, currency: str) -> dict:
        self.calls.append({"amount": amount_minor, "currency": currency})
        if self.fail:
            raise GatewayUnavailable()
        return {
            "id": f"order_test_{len(self.calls)}",
            "amount": amount_minor,
            "currency": currency,
            "status": "created",
        }


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()

    engine = create_engine(
        f"sqlite:///{db_file.name}",
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        os.unlink(db_file.name)


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def payment_config() -> PaymentConfig:
    return PaymentConfig(
        key_secret="rzp_test_secret",
        webhook_secret="whsec_test",
        currency="INR",
        processing_fee_percent=2.0,
    )


@pytest.fixture()
def client(db_session: Session, gateway: FakeGateway) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.state.limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# Shared builders

def create_user(
    db: Session,
    external_id: str = "user_buyer",
    role: UserRole = UserRole.ATTENDEE,
    created_at: datetime = None,
) -> User:
    user = User(
        external_id=external_id,
        email=f"{external_id}@example.com",
        first_name="Test",
        last_name="Buyer",
        role=role,
        created_at=created_at or datetime.utcnow() - timedelta(days=30),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.external_id})
    return {"Authorization": f"Bearer {token}"}


def create_category(db: Session, slug: str = "music", is_active: bool = True) -> Category:
    category = Category(name=slug.title(), slug=slug, is_active=is_active)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_event(
    db: Session,
    category: Category,
    organizer: User,
    title: str = "Sunburn Arena",
    location: str = "Mumbai",
    status: EventStatus = EventStatus.PUBLISHED,
    date: datetime = None,
) -> Event:
    event = Event(
        title=title,
        description=f"{title} live",
        image_url="https://cdn.example.com/event.jpg",
        date=date or datetime.utcnow() + timedelta(days=14),
        location=location,
        category_id=category.id,
        organizer_id=organizer.id,
        status=status,
        ticket_tiers=[
            TicketTier(name="General", price=1000.0, total_quantity=500),
            TicketTier(name="VIP", price=2500.0, total_quantity=50),
        ],
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event
