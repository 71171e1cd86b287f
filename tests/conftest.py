import pytest
from fastapi.testclient import TestClient

from booklend.core.config import Settings
from booklend.core.database import Database
from booklend.core.security import Identity
from booklend.main import create_app
from booklend.models.models import Role
from booklend.services.accounts import CredentialStore
from booklend.services.inventory import BookLedger

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "secret1"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'booklend_test.db'}",
        jwt_secret_key="test-signing-key",
        cors_origins=["http://testserver"],
    )


@pytest.fixture
def database(settings):
    database = Database(settings.database_url, timeout=settings.db_timeout_seconds)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def make_identity(db):
    """Create a stored user and return its Identity."""
    accounts = CredentialStore(db)

    def _make(email: str, role: Role = Role.USER) -> Identity:
        user = accounts.register(email, PASSWORD, role)
        return Identity(user_id=user.id, role=Role(user.role))
    return _make


@pytest.fixture
def ledger(db):
    return BookLedger(db)


@pytest.fixture
def app(settings):
    app = create_app(settings)
    # entering the client runs the lifespan, which opens the database
    with TestClient(app):
        yield app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_client(app):
    """Return a fresh client (own cookie jar) logged in as a newly registered user."""
    def _make(email: str, role: str = "user") -> TestClient:
        c = TestClient(app)
        r = c.post("/api/auth/register", json={"email": email, "password": PASSWORD, "role": role})
        assert r.status_code == 201, r.text
        r = c.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return c
    return _make


@pytest.fixture
def admin_client(make_client):
    return make_client(ADMIN_EMAIL, role="admin")
