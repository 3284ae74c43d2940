"""
Pytest configuration and shared fixtures
"""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.db.base  # noqa: F401
from app.api.deps import get_clock
from app.core.clock import FixedClock
from app.core.security import create_access_token
from app.db.session import Base, get_db
from app.main import app
from app.models.activity import Activity
from app.models.enums import ActivityStatus, UserRole
from app.models.user import User

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_user(db_session):
    def _make(role: UserRole = UserRole.TOURIST, name: str = "") -> User:
        uid = str(uuid.uuid4())
        u = User(id=uid, email=f"{uid[:8]}@example.com", full_name=name or role.value, role=role, is_active=True)
        db_session.add(u)
        db_session.commit()
        return u
    return _make


@pytest.fixture
def tourist(make_user):
    return make_user(UserRole.TOURIST, "Tina Tourist")


@pytest.fixture
def provider(make_user):
    return make_user(UserRole.PROVIDER, "Pat Provider")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, "Ada Admin")


@pytest.fixture
def make_activity(db_session, provider):
    def _make(
        start: datetime | None = None,
        end: datetime | None = None,
        status: ActivityStatus = ActivityStatus.PENDING,
        slots: int = 10,
        capacity: int | None = None,
        price: str = "50.00",
        owner: User | None = None,
    ) -> Activity:
        start = start or NOW + timedelta(days=1)
        end = end or start + timedelta(days=1)
        a = Activity(
            id=str(uuid.uuid4()),
            provider_id=(owner or provider).id,
            name="Kayak tour",
            description="Sea kayaking along the coast",
            location="Sarandë",
            price=Decimal(price),
            total_capacity=slots if capacity is None else capacity,
            available_slots=slots,
            status=status,
            start_date=start,
            end_date=end,
            created_at=NOW - timedelta(days=30),
            updated_at=NOW - timedelta(days=30),
        )
        db_session.add(a)
        db_session.commit()
        return a
    return _make


@pytest.fixture
def reload(db_session):
    """Fresh copy of a row, bypassing the identity map's loaded state."""
    def _reload(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)
    return _reload


@pytest.fixture(scope="function")
def client(db_session, clock):
    """Test client bound to the test session and clock"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}
    return _headers
