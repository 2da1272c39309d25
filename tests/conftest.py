import pytest

from api import STORE_KEY
from api.auth import issue_token
from main import create_app
from tests import factories

TEST_SECRET = "spooldb-test-secret"


@pytest.fixture
def app(tmp_path):
    """App bound to a throwaway SQLite file (shared by every connection)."""
    app = create_app({
        "TESTING": True,
        "DB_URL": f"sqlite:///{tmp_path / 'spooldb-test.sqlite'}",
        "JWT_SECRET": TEST_SECRET,
        "DEV_MODE": False,
    })
    yield app
    app.extensions[STORE_KEY].close()


@pytest.fixture
def store(app):
    return app.extensions[STORE_KEY]


@pytest.fixture
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture
def db_session(store):
    """Session the factories write through; every factory call commits."""
    session = store.session()
    factories.bind(session)
    yield session
    session.close()


def _auth(role: str, **kwargs) -> dict:
    token = issue_token(1, f"{role}-user", role, secret=TEST_SECRET, **kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return _auth("admin")


@pytest.fixture
def user_headers():
    return _auth("user")


@pytest.fixture
def expired_headers():
    return _auth("admin", expires_minutes=-5)


@pytest.fixture
def read_lots(store):
    """Read a part's lots through a fresh session, oldest first."""

    def _read(sku: str) -> list[dict]:
        session = store.session()
        try:
            from services.lot_store import LotStore
            return [lot.to_dict() for lot in LotStore.list_lots(session, sku)]
        finally:
            session.close()

    return _read
