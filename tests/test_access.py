"""
Проверка ролей: чистая функция is_authorized и гейт на маршрутах.
"""

from quillpost.dependencies import is_authorized
from quillpost.models import User, UserRole, UserStatus
from quillpost.routes.posts import POST_ROUTES
from quillpost.utils.routing import Route, build_router


class TestIsAuthorized:
    def test_missing_identity_is_denied(self):
        assert is_authorized(None, {UserRole.USER, UserRole.ADMIN}) is False

    def test_role_in_allowed_set(self):
        user = User(id=1, role=UserRole.USER)
        assert is_authorized(user, {UserRole.USER}) is True

    def test_role_outside_allowed_set(self):
        user = User(id=1, role=UserRole.USER)
        assert is_authorized(user, {UserRole.ADMIN}) is False

    def test_plain_string_roles_are_accepted(self):
        admin = User(id=2, role=UserRole.ADMIN)
        assert is_authorized(admin, ["ADMIN"]) is True

    def test_empty_role_set_denies_everyone(self):
        admin = User(id=2, role=UserRole.ADMIN)
        assert is_authorized(admin, []) is False


class TestRouteTable:
    def test_static_paths_precede_post_id(self):
        paths = [route.path for route in POST_ROUTES if route.method == "GET"]
        assert paths.index("/my-posts") < paths.index("/{post_id}")
        assert paths.index("/stats") < paths.index("/{post_id}")

    def test_public_routes_have_no_roles(self):
        public = {(r.method, r.path) for r in POST_ROUTES if r.roles is None}
        assert public == {("GET", ""), ("GET", "/{post_id}")}

    def test_routes_do_not_share_options(self):
        first = Route("GET", "/a", None, lambda: None)
        second = Route("GET", "/b", None, lambda: None)

        assert first.options is None
        assert second.options is None

        router = build_router([first, second])
        assert [r.path for r in router.routes] == ["/a", "/b"]


class TestGate:
    def test_anonymous_create_post_is_401(self, client):
        response = client.post("/posts", json={"title": "t", "content": "c"})

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "not_authenticated"

    def test_garbage_token_is_401(self, client):
        response = client.get("/posts/my-posts", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_unverified_user_is_403(self, client, make_user, headers_for):
        unverified = make_user(verified=False)

        response = client.post(
            "/posts",
            json={"title": "t", "content": "c"},
            headers=headers_for(unverified),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "email_not_verified"

    def test_blocked_user_is_403(self, client, make_user, headers_for):
        blocked = make_user(status=UserStatus.BLOCKED)

        response = client.post(
            "/posts",
            json={"title": "t", "content": "c"},
            headers=headers_for(blocked),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "account_blocked"

    def test_admin_cannot_use_user_only_route(self, client, admin, headers_for):
        response = client.post(
            "/posts",
            json={"title": "t", "content": "c"},
            headers=headers_for(admin),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    def test_stats_require_admin(self, client, user, admin, headers_for):
        assert client.get("/posts/stats", headers=headers_for(user)).status_code == 403
        assert client.get("/posts/stats", headers=headers_for(admin)).status_code == 200

    def test_my_posts_is_not_treated_as_post_id(self, client, user, headers_for):
        response = client.get("/posts/my-posts", headers=headers_for(user))

        assert response.status_code == 200
        assert response.json() == {"data": [], "total": 0}

    def test_public_list_needs_no_token(self, client):
        response = client.get("/posts")
        assert response.status_code == 200
