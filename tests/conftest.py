import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]

# Isolate all tests to a throwaway instance + SQLite database
TEST_INSTANCE_DIR = ROOT_DIR / ".pytest-instance"
TEST_INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
TEST_DB_PATH = TEST_INSTANCE_DIR / "test.sqlite"
os.environ["FLASK_ENV"] = "development"
os.environ["INSTANCE_DIR"] = str(TEST_INSTANCE_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH.as_posix()}"
os.environ["ENABLE_TALISMAN"] = "0"
os.environ["RATELIMIT_ENABLED"] = "0"
os.environ["DATA_BACKEND"] = "db"
os.environ["E2E_TEST_MODE"] = "0"
os.environ.pop("GOOGLE_SERVICE_ACCOUNT_FILE", None)

import pytest  # noqa: E402

from extensions import cache, db  # noqa: E402
from models import User  # noqa: E402
import app as edh_app  # noqa: E402  pylint:disable=wrong-import-position

create_app = edh_app.create_app


@pytest.fixture(scope="session")
def app():
    flask_app = create_app()
    flask_app.config.update(
        TESTING=True,
        SERVER_NAME="localhost",
        SQLALCHEMY_SESSION_OPTIONS={"expire_on_commit": False},
    )
    with flask_app.app_context():
        db.session.configure(expire_on_commit=False)
    return flask_app


@pytest.fixture
def db_session(app):
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
        if TEST_DB_PATH.exists():
            TEST_DB_PATH.unlink()
        for suffix in ("-wal", "-shm"):
            sidecar = TEST_DB_PATH.with_name(TEST_DB_PATH.name + suffix)
            if sidecar.exists():
                sidecar.unlink()
        db.create_all()
        cache.clear()
        yield db
        db.session.remove()
        db.engine.dispose()
        db.drop_all()


@pytest.fixture
def client(app, db_session):  # noqa: ARG001 - keeps DB initialised for request tests
    return app.test_client()


@pytest.fixture
def e2e_client(app, db_session, monkeypatch):  # noqa: ARG001
    """Test client with the fixture backend switched on."""
    monkeypatch.setitem(app.config, "E2E_TEST_MODE", True)
    return app.test_client()


@pytest.fixture
def create_user(db_session):
    def _create_user(
        *,
        email: str = "user@example.com",
        username: str = "user",
        password: str = "password123",
        display_name: str | None = None,
    ) -> tuple[User, str]:
        user = User(
            email=email.lower().strip(),
            username=username.lower().strip(),
            display_name=display_name,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user, password

    return _create_user


@pytest.fixture
def login(client):
    def _login(identifier: str, password: str):
        return client.post("/api/auth/login", json={"identifier": identifier, "password": password})

    return _login
