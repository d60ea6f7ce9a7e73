"""
Shared pytest fixtures for TripTrack tests.

This module provides:
- An isolated app per test (own SQLite file and storage directory)
- A TestClient with the lifespan running, so tables exist
- Helpers for signing up admins and creating trips, users and members
"""
import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

# ─────────────────────────── ENVIRONMENT ───────────────────────────

TEST_ROOT = Path(__file__).resolve().parent
SCRATCH_DIR = TEST_ROOT / "tmp_data"
SCRATCH_DIR.mkdir(parents=True, exist_ok=True)

# triptrack.main builds a default app on import; keep it inside the scratch dir
os.environ["DATABASE_URL"] = f"sqlite:///{SCRATCH_DIR / 'import.db'}"
os.environ["STORAGE_DIR"] = str(SCRATCH_DIR / "storage")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("BASE_URL", "http://testserver")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""

from triptrack.config import Settings  # noqa: E402
from triptrack.main import create_app  # noqa: E402
from triptrack.models import Trip, TripMember, User  # noqa: E402
from triptrack.services import auth_service, membership_service, trip_service, user_service  # noqa: E402

PASSWORD = "secret123"

# ─────────────────────────── FIXTURES ───────────────────────────


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'triptrack.db'}",
        secret_key="test-secret",
        base_url="http://testserver",
        storage_dir=str(tmp_path / "storage"),
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(client):
    """A store session on the same database the client talks to."""
    with Session(client.app.state.engine) as s:
        yield s


@pytest.fixture
def admin(session):
    """Root admin profile, provisioned the way a first sign-in does it."""
    return make_admin(session, "alice@example.com", "Alice")


@pytest.fixture
def logged_in(client, admin):
    """Client signed in as the ``admin`` fixture."""
    login(client, "alice@example.com")
    return client


# ─────────────────────────── HELPERS ───────────────────────────


def make_admin(session: Session, email: str, name: str) -> User:
    account = auth_service.sign_up(session, email, PASSWORD)
    return auth_service.provision_profile(session, account, name=name)


def login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


def make_trip(session: Session, actor: User, name: str = "Tokyo 2025", target_amount: str = "1000",
              target_date: str = "2030-04-01", photos=None) -> Trip:
    form = trip_service.TripForm.parse(name, target_date, target_amount, photos=photos)
    return trip_service.create_trip(session, actor, form)


def make_user(session: Session, actor: User, name: str, role: str = "joiner", color: str = "#14b8a6") -> User:
    form = user_service.UserForm.parse(name, None, role, color)
    user, _ = user_service.create_user(session, actor, form)
    return user


def add_member(session: Session, actor: User, trip: Trip, user: User) -> TripMember:
    return membership_service.add_member(session, actor, trip.id, user.id)


def fetch_member(session: Session, member_id: int) -> TripMember:
    session.expire_all()
    return session.get(TripMember, member_id)

