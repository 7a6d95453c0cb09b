"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- FastAPI test client
- Users, organizations and auth headers
- Technicians, jobs and cold leads
- Mock Celery queueing, rate limiting and outbound integrations
"""

import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.config import settings
from app.core.database import Base, get_db
from app.core.rate_limiter import rate_limiter
from app.core.security import create_access_token, get_password_hash
from app.models.job import Job, JobUrgency
from app.models.lead import ColdLead
from app.models.organization import MembershipRole, Organization, OrgMembership
from app.models.technician import Technician
from app.models.user import User
from main import app


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "TestPass123!"

# Downtown Austin, TX
AUSTIN = (30.2672, -97.7431)


@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_integrations(monkeypatch):
    """Outbound integrations are unconfigured unless a test says otherwise."""
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", "")
    monkeypatch.setattr(settings, "SENDGRID_TEMPLATE_ID_WORK_ORDER", "")
    monkeypatch.setattr(settings, "INSTANTLY_API_KEY", "")
    monkeypatch.setattr(settings, "INSTANTLY_CAMPAIGN_IDS", {})
    monkeypatch.setattr(settings, "HUNTER_API_KEY", "")
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "")
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "")


@pytest.fixture(autouse=True)
def no_rate_limits(monkeypatch):
    """Rate limiting needs Redis; tests run without it."""
    monkeypatch.setattr(rate_limiter, "check_rate_limit", lambda *args, **kwargs: None)


@pytest.fixture(autouse=True)
def queued_tasks(monkeypatch):
    """
    Record tasks passed to queue_task_safely instead of sending them to Redis.

    Returns a list of (task name, kwargs) tuples.
    """
    queued = []

    def fake_queue(task, args, kwargs):
        queued.append((task.name, kwargs))
        return (True, "test-task-id", "")

    monkeypatch.setattr("app.core.celery_utils._queue_task_sync", fake_queue)
    return queued


@pytest.fixture
def mock_celery(monkeypatch):
    """
    Mock Celery task execution for testing without Redis.
    Executes tasks synchronously in tests.
    """
    def mock_delay(self, *args, **kwargs):
        """Execute task synchronously instead of queuing"""
        return self(*args, **kwargs)

    monkeypatch.setattr("celery.Task.delay", mock_delay)
    return mock_delay


@pytest.fixture
def session_factory():
    """Sessionmaker bound to the test engine, for code that opens its own session."""
    return TestingSessionLocal


def create_user(db, email, is_admin=False, is_active=True, password=TEST_PASSWORD):
    user = User(
        id=uuid.uuid4(),
        email=email,
        hashed_password=get_password_hash(password),
        full_name="Test User",
        is_active=is_active,
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    return user


def create_org(db, user, name="Acme Facilities", role=MembershipRole.OWNER):
    organization = Organization(id=uuid.uuid4(), name=name)
    db.add(organization)
    db.flush()
    db.add(OrgMembership(user_id=user.id, org_id=organization.id, role=role))
    db.commit()
    return organization


def headers_for(user, org_id=None):
    token = create_access_token(data={"sub": str(user.id), "is_admin": user.is_admin})
    headers = {"Authorization": f"Bearer {token}"}
    if org_id is not None:
        headers["X-Organization-Id"] = str(org_id)
    return headers


@pytest.fixture
def user_factory(db_session):
    def _make(email, **kwargs):
        return create_user(db_session, email, **kwargs)
    return _make


@pytest.fixture
def org_factory(db_session):
    def _make(user, **kwargs):
        return create_org(db_session, user, **kwargs)
    return _make


@pytest.fixture
def token_headers():
    return headers_for


@pytest.fixture
def test_user(db_session):
    return create_user(db_session, "owner@example.com")


@pytest.fixture
def org(db_session, test_user):
    return create_org(db_session, test_user)


@pytest.fixture
def auth_headers(test_user, org):
    return headers_for(test_user)


@pytest.fixture
def other_org_headers(db_session):
    """A second, unrelated organization's owner."""
    user = create_user(db_session, "other@example.com")
    create_org(db_session, user, name="Other Co")
    return headers_for(user)


@pytest.fixture
def admin_headers(db_session):
    user = create_user(db_session, "admin@example.com", is_admin=True)
    create_org(db_session, user, name="Platform")
    return headers_for(user)


@pytest.fixture
def public_pool(db_session):
    pool = Organization(id=settings.PUBLIC_POOL_ORG_ID, name=settings.PUBLIC_POOL_ORG_NAME)
    db_session.add(pool)
    db_session.commit()
    return pool


@pytest.fixture
def make_technician(db_session):
    """Factory for signed-up HVAC technicians in Austin, TX."""
    counter = {"n": 0}

    def _make(org_id, **overrides):
        counter["n"] += 1
        data = {
            "org_id": org_id,
            "full_name": f"Tech {counter['n']}",
            "email": f"tech{counter['n']}@example.com",
            "phone": "512-555-0100",
            "trade": "HVAC",
            "city": "Austin",
            "state": "TX",
            "lat": AUSTIN[0],
            "lng": AUSTIN[1],
            "is_available": True,
            "signed_up": True,
        }
        data.update(overrides)
        technician = Technician(**data)
        db_session.add(technician)
        db_session.commit()
        return technician

    return _make


@pytest.fixture
def make_job(db_session):
    """Factory for jobs inserted directly (no timers, no dispatch)."""
    def _make(org_id, **overrides):
        data = {
            "org_id": org_id,
            "job_title": "AC not cooling",
            "trade_needed": "HVAC",
            "address_text": "100 Congress Ave, Austin, TX",
            "city": "Austin",
            "state": "TX",
            "lat": AUSTIN[0],
            "lng": AUSTIN[1],
            "urgency": JobUrgency.SAME_DAY,
        }
        data.update(overrides)
        job = Job(**data)
        db_session.add(job)
        db_session.commit()
        return job

    return _make


@pytest.fixture
def make_cold_lead(db_session):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "email": f"lead{counter['n']}@coldmail.com",
            "full_name": f"Lead Person{counter['n']}",
            "company_name": f"Lead Co {counter['n']}",
            "trade_type": "HVAC",
            "city": "Austin",
            "state": "TX",
            "email_verified": True,
            "dispatch_count": 0,
        }
        data.update(overrides)
        lead = ColdLead(**data)
        db_session.add(lead)
        db_session.commit()
        return lead

    return _make


@pytest.fixture
def sample_job_data():
    """Sample job request body for testing"""
    return {
        "job_title": "Rooftop unit not cooling",
        "description": "RTU-2 blowing warm air, tenant complaints since this morning.",
        "trade_needed": "HVAC",
        "address_text": "100 Congress Ave, Austin, TX 78701",
        "city": "Austin",
        "state": "TX",
        "lat": AUSTIN[0],
        "lng": AUSTIN[1],
        "urgency": "same_day",
        "pay_rate": "$85/hr",
    }
