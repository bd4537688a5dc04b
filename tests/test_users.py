"""Profile management, account deactivation and superuser user administration."""

from api.extensions import STORAGE
from models.admin_log import AdminLog


class TestProfile:
    def test_update_profile(self, api):
        token = api.signup("a@x.com")
        resp = api.patch("/users/profile", token, json={"firstName": "Alice", "username": "alice_1"})
        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["firstName"] == "Alice"
        assert user["username"] == "alice_1"

    def test_role_cannot_be_set_through_profile(self, api):
        token = api.signup("a@x.com")
        api.patch("/users/profile", token, json={"role": "superuser", "isVerified": True})
        assert api.user("a@x.com").role == "customer"
        assert api.user("a@x.com").is_verified is False

    def test_username_taken(self, api):
        api.register("b@x.com", username="bob")
        token = api.signup("a@x.com")
        assert api.patch("/users/profile", token, json={"username": "bob"}).status_code == 409

    def test_invalid_name(self, api):
        token = api.signup("a@x.com")
        assert api.patch("/users/profile", token, json={"firstName": "R2-D2"}).status_code == 400


class TestDeactivate:
    def test_deactivation_revokes_sessions_and_blocks_login(self, api):
        token = api.signup("a@x.com")
        assert api.delete("/users/account", token).status_code == 200

        assert api.get("/auth/profile", token).status_code == 401
        assert api.login("a@x.com").status_code == 403
        assert api.user("a@x.com").is_active is False


class TestPublicProfile:
    def test_anonymous_view(self, api):
        api.register("a@x.com", firstName="Alice")
        user_id = api.user("a@x.com").id
        resp = api.get(f"/users/{user_id}")
        user = resp.get_json()["data"]["user"]
        assert resp.status_code == 200
        assert user["isSelf"] is False
        assert user["firstName"] == "Alice"
        assert "email" not in user

    def test_self_view(self, api):
        token = api.signup("a@x.com")
        user_id = api.user("a@x.com").id
        user = api.get(f"/users/{user_id}", token).get_json()["data"]["user"]
        assert user["isSelf"] is True
        assert user["email"] == "a@x.com"

    def test_unknown_user(self, api):
        assert api.get("/users/nope").status_code == 404


class TestUserAdministration:
    def test_list_with_filters(self, api, superuser_token):
        api.signup("a@x.com")
        api.signup("b@x.com", role="admin")
        api.update_user("a@x.com", is_blocked=True)

        everyone = api.get("/users", superuser_token).get_json()["data"]
        assert everyone["pagination"]["total"] == 3

        admins = api.get("/users?role=admin", superuser_token).get_json()["data"]["users"]
        assert [u["email"] for u in admins] == ["b@x.com"]

        blocked = api.get("/users?status=blocked", superuser_token).get_json()["data"]["users"]
        assert [u["email"] for u in blocked] == ["a@x.com"]
        assert blocked[0]["isBlocked"] is True

        page = api.get("/users?limit=2&page=2", superuser_token).get_json()["data"]
        assert len(page["users"]) == 1
        assert page["pagination"]["pages"] == 2

    def test_bad_filters(self, api, superuser_token):
        assert api.get("/users?role=king", superuser_token).status_code == 400
        assert api.get("/users?page=abc", superuser_token).status_code == 400

    def test_block_revokes_sessions_and_is_logged(self, api, app, superuser_token):
        token = api.signup("a@x.com")
        user_id = api.user("a@x.com").id

        resp = api.put(f"/users/{user_id}/block", superuser_token, json={"isBlocked": True})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["isBlocked"] is True

        assert api.get("/auth/profile", token).status_code == 401
        assert api.login("a@x.com").status_code == 403
        with app.app_context():
            logs = app.extensions[STORAGE].get_session().query(AdminLog).all()
            assert [(log.action, log.target_id) for log in logs] == [("block_user", user_id)]

        assert api.put(f"/users/{user_id}/block", superuser_token, json={"isBlocked": False}).status_code == 200
        assert api.login("a@x.com").status_code == 200

    def test_cannot_block_self_or_superuser(self, api, superuser_token):
        root_id = api.user("root@x.com").id
        assert api.put(f"/users/{root_id}/block", superuser_token, json={"isBlocked": True}).status_code == 400

        api.signup("other-root@x.com", role="superuser")
        other_id = api.user("other-root@x.com").id
        assert api.put(f"/users/{other_id}/block", superuser_token, json={"isBlocked": True}).status_code == 403

    def test_block_requires_flag(self, api, superuser_token):
        user_id = api.user("root@x.com").id
        assert api.put(f"/users/{user_id}/block", superuser_token, json={}).status_code == 400

    def test_admin_logs(self, api, superuser_token):
        api.signup("a@x.com")
        user_id = api.user("a@x.com").id
        api.put(f"/users/{user_id}/block", superuser_token, json={"isBlocked": True})

        logs = api.get("/admin/logs", superuser_token).get_json()["data"]
        assert logs["pagination"]["total"] == 1
        assert logs["logs"][0]["action"] == "block_user"
        assert api.get("/admin/logs?action=unblock_user", superuser_token).get_json()["data"]["logs"] == []
