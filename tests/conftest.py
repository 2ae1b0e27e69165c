import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_MAX_CALLS"] = "100000"
os.environ["SSO_SIMULATED"] = "true"

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal.auth.deps import get_db
from portal.auth.service import approve_manager, register_user
from portal.config import settings
from portal.db.gateway import PortalGateway
from portal.db.session import init_db
from portal.files.storage import FileStorage
from portal.main import app
from portal.models.enums import Role

PASSWORD = "pw123456"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def gw(db):
    return PortalGateway(db)


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def storage(upload_dir):
    return FileStorage(str(upload_dir))


@pytest.fixture
def deadline():
    return datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=7)


@pytest.fixture
def accounts(gw):
    admin = register_user(gw, "admin@x.com", PASSWORD, Role.admin, "Admin")
    manager = register_user(gw, "manager@x.com", PASSWORD, Role.manager, "Manager")
    approve_manager(gw, admin, manager.id)
    alice = register_user(gw, "alice@x.com", PASSWORD, Role.user, "Alice")
    bob = register_user(gw, "bob@x.com", PASSWORD, Role.user, "Bob")
    return SimpleNamespace(
        admin=gw.get_user(admin.id),
        manager=gw.get_user(manager.id),
        alice=gw.get_user(alice.id),
        bob=gw.get_user(bob.id),
    )


def override_db(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()
    return _get_db


@pytest.fixture
def client(session_factory):
    app.dependency_overrides[get_db] = override_db(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api(client):
    """Registers and signs in accounts over HTTP, returning their ids and auth headers."""

    def signup(email, role="user", name=None, password=PASSWORD):
        r = client.post("/users", json={"email": email, "password": password, "role": role, "name": name or email})
        assert r.status_code == 201, r.text
        return r.json()

    def login(email, password=PASSWORD):
        r = client.post("/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['accessToken']}"}

    def account(email, role="user"):
        user = signup(email, role)
        return SimpleNamespace(id=user["id"], headers=login(email))

    admin = account("admin@x.com", "admin")
    manager_user = signup("manager@x.com", "manager")
    r = client.put(f"/users/{manager_user['id']}/approve", headers=admin.headers)
    assert r.status_code == 200, r.text
    manager = SimpleNamespace(id=manager_user["id"], headers=login("manager@x.com"))

    return SimpleNamespace(
        client=client,
        signup=signup,
        login=login,
        admin=admin,
        manager=manager,
        alice=account("alice@x.com"),
        bob=account("bob@x.com"),
    )
