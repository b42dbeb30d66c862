import fnmatch

import pytest

from linkinpurry import auth_service, cache, create_app, db
from linkinpurry.auth import generate_token
from linkinpurry.models import Connection, ConnectionRequest, User

PASSWORD = "secret1"
DEFAULT_PROFILE = "http://localhost/static/default.png"


class FakeRedis:
    """Just enough of the redis client API for the response cache."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatchcase(k, match)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'test.db'}",
        "STORAGE_BACKEND": "local",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "BASE_URL": "http://localhost",
        "DEFAULT_PROFILE": DEFAULT_PROFILE,
        "REDIS_URL": "",
        "VAPID_PRIVATE_KEY": "",
        "VAPID_PUBLIC_KEY": "test-public-key",
        "BCRYPT_LOG_ROUNDS": 4,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def fake_redis(app):
    fake = FakeRedis()
    cache.client = fake
    yield fake
    cache.client = None


def create_user(username, full_name=None, password=PASSWORD):
    """Register a user through the service layer; needs an app context."""
    result = auth_service.register(
        username,
        full_name or username.title(),
        f"{username}@example.com",
        password,
        password,
    )
    return result["userId"]


def connect(user_a, user_b):
    db.session.add(Connection(from_id=user_a, to_id=user_b))
    db.session.commit()


def request_connection(from_id, to_id):
    db.session.add(ConnectionRequest(from_id=from_id, to_id=to_id))
    db.session.commit()


def token_for(user_id):
    return generate_token(db.session.get(User, user_id))


def auth_header(user_id):
    return {"Authorization": f"Bearer {token_for(user_id)}"}


@pytest.fixture()
def users(app):
    """alice - bob - carol - dave - erin in a chain, plus an isolated frank."""
    with app.app_context():
        ids = {name: create_user(name) for name in ("alice", "bob", "carol", "dave", "erin", "frank")}
        connect(ids["alice"], ids["bob"])
        connect(ids["carol"], ids["bob"])
        connect(ids["carol"], ids["dave"])
        connect(ids["dave"], ids["erin"])
    return ids


@pytest.fixture()
def login_as(app):
    """Return a test client logged in (via the token cookie) as `username`."""

    def _login(username, password=PASSWORD):
        c = app.test_client()
        r = c.post("/api/login", json={"identifier": username, "password": password})
        assert r.status_code == 200, r.json
        return c

    return _login
