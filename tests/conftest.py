"""Shared fixtures: an in-memory database, user/org factories and a test client."""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orgaccess.core.rate_limit import clear_rate_limits
from orgaccess.core.roles import Role
from orgaccess.db.session import Base, get_db
from orgaccess.main import app
from orgaccess.models.user import PlanTier
from orgaccess.services import organizations
from orgaccess.stores import memberships
from orgaccess.stores import organizations as org_store
from orgaccess.utils.dates import utcnow
import orgaccess.models  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    clear_rate_limits()
    yield
    clear_rate_limits()


@pytest.fixture(autouse=True)
def invitation_mailer():
    """Invitation emails never leave the test run."""
    with patch("orgaccess.services.invitations.send_invitation_email", return_value="msg-1") as mailer:
        yield mailer


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, first_name="Test", last_name="User"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        user = memberships.provision_user(db, f"sub-{counter['n']}-{email}", email, first_name, last_name)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_org(db, make_user):
    """Create an organization with an admin; returns (org, admin)."""
    def _make(name="Acme", domain=None, admin_email=None):
        admin = make_user(email=admin_email)
        org = organizations.create_organization(db, name=name, admin_user_id=admin.id, domain=domain)
        db.refresh(admin)
        return org, admin

    return _make


@pytest.fixture
def add_member(db, make_user):
    """Put a new user straight into an organization with the given role."""
    def _add(org, role, email=None):
        user = make_user(email=email)
        memberships.join_organization(db, user.id, org.id, Role(role), PlanTier.ENTERPRISE, utcnow())
        org_store.increment_seats(db, org.id)
        db.commit()
        db.refresh(user)
        return user

    return _add
