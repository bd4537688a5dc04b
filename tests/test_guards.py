"""Role, ownership, verified and shop-ownership guards, exercised through real routes."""

from api.extensions import STORAGE
from models.post import Post
from models.shop import Shop


def _create_post(api, token, content="hello"):
    resp = api.post("/posts", token, json={"title": "t", "content": content})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]["post"]["id"]


def _post_content(app, post_id):
    with app.app_context():
        post = app.extensions[STORAGE].get(Post, post_id)
        return post.content if post is not None else None


class TestRoleGuard:
    def test_customer_is_forbidden_on_superuser_routes(self, api):
        token = api.signup("c@x.com")
        resp = api.get("/users", token)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "FORBIDDEN"

    def test_outcome_does_not_depend_on_resource_existence(self, api):
        token = api.signup("c@x.com")
        api.post("/admin-requests", token, json={"shopName": "Shop"})
        existing = api.get("/admin-requests/my-requests", token).get_json()["data"]["requests"][0]["id"]

        assert api.put(f"/admin-requests/{existing}/approve", token, json={}).status_code == 403
        assert api.put("/admin-requests/missing/approve", token, json={}).status_code == 403

    def test_superuser_is_allowed(self, api, superuser_token):
        assert api.get("/users", superuser_token).status_code == 200

    def test_no_hierarchy_admin_is_not_superuser(self, api):
        token = api.signup("adm@x.com", role="admin")
        assert api.get("/users", token).status_code == 403

    def test_unauthenticated_before_forbidden(self, api):
        assert api.get("/users").status_code == 401


class TestOwnershipGuard:
    def test_owner_can_update_and_delete(self, api, app):
        token = api.signup("a@x.com", verified=True)
        post_id = _create_post(api, token)

        resp = api.patch(f"/posts/{post_id}", token, json={"content": "edited"})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["post"]["content"] == "edited"

        assert api.delete(f"/posts/{post_id}", token).status_code == 200
        assert _post_content(app, post_id) is None

    def test_other_user_gets_403_and_nothing_changes(self, api, app):
        owner = api.signup("a@x.com", verified=True)
        other = api.signup("b@x.com", verified=True)
        post_id = _create_post(api, owner, content="original")

        patch = api.patch(f"/posts/{post_id}", other, json={"content": "hijacked"})
        assert patch.status_code == 403
        assert patch.get_json()["message"] == "You can only access your own resources"
        assert api.delete(f"/posts/{post_id}", other).status_code == 403
        assert _post_content(app, post_id) == "original"

    def test_missing_resource_is_404(self, api):
        token = api.signup("a@x.com", verified=True)
        assert api.patch("/posts/does-not-exist", token, json={"content": "x"}).status_code == 404

    def test_superuser_bypasses_ownership(self, api, app, superuser_token):
        owner = api.signup("a@x.com", verified=True)
        post_id = _create_post(api, owner)
        assert api.delete(f"/posts/{post_id}", superuser_token).status_code == 200
        assert _post_content(app, post_id) is None


class TestVerifiedGuard:
    def test_unverified_user_cannot_post(self, api):
        token = api.signup("a@x.com")
        resp = api.post("/posts", token, json={"content": "hello"})
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "Please verify your email address to continue."

    def test_reading_needs_no_account(self, api):
        token = api.signup("a@x.com", verified=True)
        post_id = _create_post(api, token)
        assert api.get("/posts").get_json()["data"]["pagination"]["total"] == 1
        assert api.get(f"/posts/{post_id}").status_code == 200

    def test_bad_token_on_optional_route_is_anonymous(self, api):
        resp = api.get("/posts?mine=true", "garbage")
        assert resp.status_code == 200


class TestShopOwnerGuard:
    def test_customer_is_forbidden(self, api):
        token = api.signup("c@x.com")
        assert api.get("/admin/dashboard", token).status_code == 403

    def test_admin_without_shop(self, api):
        token = api.signup("adm@x.com", role="admin")
        resp = api.get("/admin/dashboard", token)
        assert resp.status_code == 403
        assert resp.get_json()["message"] == "No shop assigned to this admin"

    def test_admin_sees_own_shop(self, api, app):
        token = api.signup("adm@x.com", role="admin")
        admin_id = api.user("adm@x.com").id
        with app.app_context():
            storage = app.extensions[STORAGE]
            with storage.transaction():
                storage.new(Shop(name="Corner Shop", admin_id=admin_id, is_visible=True))

        resp = api.get("/admin/dashboard", token)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["shop"]["name"] == "Corner Shop"

    def test_superuser_sees_every_shop(self, api, superuser_token):
        resp = api.get("/admin/dashboard", superuser_token)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["shops"] == []
