import os
import sys
import time
from pathlib import Path

os.environ.setdefault("APP_ENV", "testing")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from api.extensions import STORAGE, TOKEN_ISSUER  # noqa: E402
from models.user import User  # noqa: E402
from utils.tokens import TokenIssuer  # noqa: E402

PASSWORD = "Passw0rd"
API = "/api/v1"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class FakeClock:
    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now += int(delta.total_seconds())


class ApiHelper:
    """Thin wrapper over the test client for the flows most tests start with."""

    def __init__(self, app, client):
        self.app = app
        self.client = client

    def register(self, email="a@x.com", password=PASSWORD, **extra):
        body = {"email": email, "password": password}
        body.update(extra)
        return self.client.post(f"{API}/auth/register", json=body)

    def login(self, email="a@x.com", password=PASSWORD, **extra):
        body = {"email": email, "password": password}
        body.update(extra)
        return self.client.post(f"{API}/auth/login", json=body)

    def tokens(self, response):
        return response.get_json()["data"]["tokens"]

    def signup(self, email="a@x.com", role=None, verified=False):
        """Register a user, optionally adjust role/verified, return a fresh access token."""
        resp = self.register(email)
        assert resp.status_code == 201, resp.get_json()
        values = {}
        if role is not None:
            values["role"] = role
        if verified:
            values["is_verified"] = True
        if values:
            self.update_user(email, **values)
        return self.tokens(resp)["accessToken"]

    def update_user(self, email, **values):
        with self.app.app_context():
            storage = self.app.extensions[STORAGE]
            with storage.transaction() as session:
                user = session.query(User).filter(User.email == email).one()
                for key, value in values.items():
                    setattr(user, key, value)

    def user(self, email):
        with self.app.app_context():
            session = self.app.extensions[STORAGE].get_session()
            return session.query(User).filter(User.email == email).one()

    def get(self, path, token=None, **kwargs):
        return self.client.get(f"{API}{path}", headers=bearer(token) if token else {}, **kwargs)

    def post(self, path, token=None, **kwargs):
        return self.client.post(f"{API}{path}", headers=bearer(token) if token else {}, **kwargs)

    def put(self, path, token=None, **kwargs):
        return self.client.put(f"{API}{path}", headers=bearer(token) if token else {}, **kwargs)

    def patch(self, path, token=None, **kwargs):
        return self.client.patch(f"{API}{path}", headers=bearer(token) if token else {}, **kwargs)

    def delete(self, path, token=None, **kwargs):
        return self.client.delete(f"{API}{path}", headers=bearer(token) if token else {}, **kwargs)


@pytest.fixture
def app_overrides():
    """Per-test config overrides; override this fixture to change limits etc."""
    return {}


@pytest.fixture
def app(app_overrides):
    """Fresh app with its own in-memory database."""
    application = create_app("testing", overrides=app_overrides)
    yield application
    application.extensions[STORAGE].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api(app, client):
    return ApiHelper(app, client)


@pytest.fixture
def superuser_token(api):
    return api.signup("root@x.com", role="superuser", verified=True)


@pytest.fixture
def token_clock(app):
    """Drive the app's token issuer from a clock the test can move forward."""
    clock = FakeClock(int(time.time()))
    app.extensions[TOKEN_ISSUER] = TokenIssuer.from_config(app.config, clock=clock)
    return clock
