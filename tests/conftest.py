"""Pytest configuration and fixtures."""

import itertools
import os
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

# Engine settings for tests; must be set before src modules read them
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("TICK_LOCK_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.database import Base, get_db
from src.main import app
from src.models import Category, ReminderConfig, Team, User, WorkItem
from src.models.enums import UserRole, WorkItemKind, WorkItemStatus
from src.services.auth import create_access_token
from src.services.channels import NotificationChannel

# Wednesday noon UTC
NOW = datetime(2026, 3, 4, 12, 0, tzinfo=UTC)


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/sla_engine", "/sla_engine_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def other_db():
    """A second session, for simulating a concurrent caller."""
    session = TestingSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def channel():
    """Outbound channel double that accepts every message."""
    mock_channel = MagicMock(spec=NotificationChannel)
    mock_channel.send.return_value = True
    return mock_channel


@pytest.fixture
def make_user(db):
    """Factory for users."""
    counter = itertools.count(1)

    def _make_user(role: UserRole = UserRole.STAFF, team: Team | None = None, **kwargs) -> User:
        n = next(counter)
        user = User(
            email=kwargs.pop("email", f"user{n}@example.com"),
            name=kwargs.pop("name", f"User {n}"),
            role=role,
            team_id=team.id if team else None,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_team(db):
    """Factory for a team, optionally with a leader."""

    def _make_team(leader: User | None = None, name: str = "Support") -> Team:
        team = Team(name=name, leader_id=leader.id if leader else None)
        db.add(team)
        db.commit()
        db.refresh(team)
        if leader:
            leader.team_id = team.id
            db.commit()
        return team

    return _make_team


@pytest.fixture
def make_category(db):
    """Factory for categories."""

    def _make_category(name: str = "General", **kwargs) -> Category:
        category = Category(name=name, **kwargs)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    return _make_category


@pytest.fixture
def make_work_item(db):
    """Factory for work items; timestamps default to one hour before NOW."""

    def _make_work_item(**kwargs) -> WorkItem:
        created_at = kwargs.pop("created_at", NOW - timedelta(hours=1))
        item = WorkItem(
            kind=kwargs.pop("kind", WorkItemKind.TASK),
            title=kwargs.pop("title", "Replace printer toner"),
            status=kwargs.pop("status", WorkItemStatus.TODO),
            created_at=created_at,
            status_changed_at=kwargs.pop("status_changed_at", created_at),
            last_activity_at=kwargs.pop("last_activity_at", created_at),
            accumulated_paused_minutes=kwargs.pop("accumulated_paused_minutes", 0.0),
            **kwargs,
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make_work_item


@pytest.fixture
def reminder_config(db):
    """Active reminder config with 60/120/180 minute thresholds."""
    config = ReminderConfig(
        enabled=True,
        first_reminder_minutes=60,
        second_reminder_minutes=120,
        third_reminder_minutes=180,
        channels=["in_app"],
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


@pytest.fixture
def test_user(make_user):
    return make_user(email="test@example.com", name="Test User")


@pytest.fixture
def auth_headers(client, test_user):
    """Auth headers for a staff user, with the user id attached."""
    token = create_access_token(test_user.id, test_user.email)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=test_user.id)


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {os.environ['CRON_SECRET']}"}
