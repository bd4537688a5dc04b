"""Email verification, health, docs and the management commands."""

from datetime import timedelta

from api.extensions import STORAGE
from models.session import UserSession
from models.user import User


class TestOtp:
    def test_send_and_verify(self, api):
        token = api.signup("a@x.com")
        sent = api.post("/otp/send", json={"email": "a@x.com"})
        assert sent.status_code == 200
        code = sent.get_json()["otp"]

        resp = api.post("/otp/verify", token, json={"otp": code})
        assert resp.status_code == 200
        assert api.user("a@x.com").is_verified is True
        assert api.get("/auth/profile", token).get_json()["data"]["user"]["isVerified"] is True

    def test_new_code_invalidates_the_old_one(self, api):
        token = api.signup("a@x.com")
        old = api.post("/otp/send", json={"email": "a@x.com"}).get_json()["otp"]
        new = api.post("/otp/send", json={"email": "a@x.com"}).get_json()["otp"]

        if old != new:
            assert api.post("/otp/verify", token, json={"otp": old}).status_code == 400
        assert api.post("/otp/verify", token, json={"otp": new}).status_code == 200

    def test_code_is_single_use(self, api):
        token = api.signup("a@x.com")
        code = api.post("/otp/send", json={"email": "a@x.com"}).get_json()["otp"]
        assert api.post("/otp/verify", token, json={"otp": code}).status_code == 200
        assert api.post("/otp/verify", token, json={"otp": code}).status_code == 400

    def test_code_for_another_address_does_not_verify(self, api):
        token = api.signup("a@x.com")
        code = api.post("/otp/send", json={"email": "b@x.com"}).get_json()["otp"]
        assert api.post("/otp/verify", token, json={"otp": code}).status_code == 400

    def test_malformed_code(self, api):
        token = api.signup("a@x.com")
        assert api.post("/otp/verify", token, json={"otp": "12ab"}).status_code == 400

    def test_verify_requires_auth(self, api):
        assert api.post("/otp/verify", json={"otp": "123456"}).status_code == 401


class TestHealthAndDocs:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "database": "ok", "version": "1.0.0"}

    def test_root(self, client):
        assert client.get("/").get_json()["docs"] == "/apidocs/"

    def test_swagger_spec_lists_auth_routes(self, client):
        spec = client.get("/swagger.json").get_json()
        assert "/api/v1/auth/login" in spec["paths"]


class TestCli:
    def test_create_superuser(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["create-superuser", "Boss@X.com", "Passw0rd"])
        assert result.exit_code == 0, result.output
        assert "superuser ready" in result.output

        with app.app_context():
            user = app.extensions[STORAGE].get_session().query(User).filter(User.email == "boss@x.com").one()
            assert user.role == "superuser"

    def test_create_superuser_promotes_existing(self, api, app):
        api.register("a@x.com")
        result = app.test_cli_runner().invoke(args=["create-superuser", "a@x.com", "Passw0rd"])
        assert result.exit_code == 0, result.output
        assert api.user("a@x.com").role == "superuser"

    def test_purge_sessions(self, api, app):
        api.register("a@x.com")
        api.login("a@x.com")  # revokes the registration session
        with app.app_context():
            storage = app.extensions[STORAGE]
            with storage.transaction() as session:
                live = session.query(UserSession).filter(UserSession.is_active.is_(True)).one()
                live.expires_at = live.expires_at - timedelta(days=60)

        result = app.test_cli_runner().invoke(args=["purge-sessions"])
        assert result.exit_code == 0, result.output
        assert "removed 2 session(s)" in result.output
