"""Pytest fixtures for API testing."""
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from teamhub.main import app
from teamhub.core.database import get_db
from teamhub.core.roles import RoleCode
from teamhub.core.security import get_password_hash, create_user_token
from teamhub.models.base import Base
from teamhub.models.user import User
from teamhub.models.team import Team

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Test client with database override."""
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _make_user(db, email: str, full_name: str, role: str) -> User:
    user = User(
        email=email,
        full_name=full_name,
        password_hash=get_password_hash("testpass123"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_headers(user: User) -> dict:
    token = create_user_token(user.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db_session):
    return _make_user(db_session, "admin@example.com", "Ada Admin", RoleCode.SUPER_ADMIN.value)


@pytest.fixture
def lead_user(db_session):
    return _make_user(db_session, "lead@example.com", "Lee Lead", RoleCode.TEAM_LEAD.value)


@pytest.fixture
def other_lead_user(db_session):
    """Team lead who does not lead the fixture team."""
    return _make_user(db_session, "otherlead@example.com", "Olive Otherlead", RoleCode.TEAM_LEAD.value)


@pytest.fixture
def member_user(db_session):
    return _make_user(db_session, "member@example.com", "Mia Member", RoleCode.MEMBER.value)


@pytest.fixture
def second_member(db_session):
    return _make_user(db_session, "second@example.com", "Sam Second", RoleCode.MEMBER.value)


@pytest.fixture
def read_only_user(db_session):
    return _make_user(db_session, "viewer@example.com", "Vic Viewer", RoleCode.READ_ONLY.value)


@pytest.fixture
def admin_headers(admin_user):
    """Get authorization headers for the super admin."""
    return make_headers(admin_user)


@pytest.fixture
def lead_headers(lead_user):
    return make_headers(lead_user)


@pytest.fixture
def other_lead_headers(other_lead_user):
    return make_headers(other_lead_user)


@pytest.fixture
def member_headers(member_user):
    return make_headers(member_user)


@pytest.fixture
def read_only_headers(read_only_user):
    return make_headers(read_only_user)


@pytest.fixture
def team_a(db_session, lead_user):
    """Team led by lead_user."""
    team = Team(name="Alpha", description="Team Alpha", lead_id=lead_user.user_id)
    db_session.add(team)
    db_session.commit()
    db_session.refresh(team)
    return team


@pytest.fixture
def team_b(db_session, other_lead_user):
    team = Team(name="Bravo", description="Team Bravo", lead_id=other_lead_user.user_id)
    db_session.add(team)
    db_session.commit()
    db_session.refresh(team)
    return team


@pytest.fixture
def team_c(db_session):
    team = Team(name="Charlie", description="Team Charlie")
    db_session.add(team)
    db_session.commit()
    db_session.refresh(team)
    return team


@pytest.fixture(scope="session")
def postgres_engine():
    """Engine for a real Postgres database; skipped unless TEST_DATABASE_URL is set."""
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set")
    pg_engine = create_engine(url, pool_pre_ping=True)
    yield pg_engine
    pg_engine.dispose()


@pytest.fixture
def postgres_db_session(postgres_engine):
    Base.metadata.drop_all(bind=postgres_engine)
    Base.metadata.create_all(bind=postgres_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=postgres_engine)
    db = SessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=postgres_engine)
