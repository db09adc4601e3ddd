"""
Посты: лента с фильтрами и пагинацией, чтение с просмотрами,
правка/удаление с проверкой владельца, мои посты и статистика.
"""

import math

import pytest

from quillpost.models import CommentStatus, PostStatus, UserStatus
from quillpost.services import post_service
from quillpost.utils.exceptions import NotFound


def _ids(response):
    return [item["id"] for item in response.json()["data"]]


class TestListPosts:
    def test_tags_filter_requires_every_tag(self, client, user, make_post):
        p1 = make_post(user, tags=["a", "b"], status=PostStatus.PUBLISHED)
        p2 = make_post(user, tags=["a"], status=PostStatus.DRAFT)

        both = client.get("/posts", params={"tags": "a,b"})
        only_a = client.get("/posts", params={"tags": "a"})

        assert _ids(both) == [p1.id]
        assert sorted(_ids(only_a)) == sorted([p1.id, p2.id])

    def test_tags_filter_ignores_blank_entries(self, client, user, make_post):
        p1 = make_post(user, tags=["a", "b"])
        make_post(user, tags=["b"])

        response = client.get("/posts", params={"tags": "a, ,"})

        assert _ids(response) == [p1.id]

    def test_pagination_windows_partition_results(self, client, user, make_post):
        created = [make_post(user, tags=["x"]) for _ in range(7)]
        make_post(user, tags=["other"])

        seen = []
        for page in (1, 2, 3):
            response = client.get("/posts", params={"tags": "x", "page": page, "limit": 3})
            body = response.json()
            assert body["pagination"] == {
                "total": 7,
                "page": page,
                "limit": 3,
                "total_page": math.ceil(7 / 3),
            }
            seen.extend(_ids(response))

        assert len(seen) == len(set(seen))
        assert set(seen) == {p.id for p in created}

    def test_page_past_the_end_is_empty(self, client, user, make_post):
        make_post(user)

        body = client.get("/posts", params={"page": 5, "limit": 10}).json()

        assert body["data"] == []
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["total_page"] == 1

    def test_default_order_is_newest_first(self, client, user, make_post):
        first = make_post(user)
        second = make_post(user)

        assert _ids(client.get("/posts")) == [second.id, first.id]
        assert _ids(client.get("/posts", params={"sortOrder": "asc"})) == [first.id, second.id]

    def test_sort_by_views(self, client, user, make_post):
        popular = make_post(user, views=50)
        quiet = make_post(user, views=1)

        response = client.get("/posts", params={"sortBy": "views", "sortOrder": "desc"})

        assert _ids(response) == [popular.id, quiet.id]

    def test_unknown_sort_field_is_rejected(self, client):
        response = client.get("/posts", params={"sortBy": "password"})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_sort_field"

    def test_search_matches_title_content_or_exact_tag(self, client, user, make_post):
        by_title = make_post(user, title="Learning FastAPI")
        by_content = make_post(user, content="deep dive into fastapi internals")
        by_tag = make_post(user, tags=["fastapi"])
        make_post(user, tags=["fastapi-extra"], title="Other", content="nothing")

        response = client.get("/posts", params={"search": "fastapi"})

        assert sorted(_ids(response)) == sorted([by_title.id, by_content.id, by_tag.id])

    def test_search_treats_like_wildcards_literally(self, client, user, make_post):
        make_post(user, title="plain title", content="nothing here")
        underscored = make_post(user, title="under_score", content="nothing here")
        percent = make_post(user, title="100% done", content="nothing here")

        assert _ids(client.get("/posts", params={"search": "_"})) == [underscored.id]
        assert _ids(client.get("/posts", params={"search": "%"})) == [percent.id]
        assert _ids(client.get("/posts", params={"search": "N_T"})) == []

    def test_is_featured_filter(self, client, user, make_post):
        featured = make_post(user, is_featured=True)
        plain = make_post(user)

        assert _ids(client.get("/posts", params={"isFeatured": "true"})) == [featured.id]
        assert _ids(client.get("/posts", params={"isFeatured": "false"})) == [plain.id]
        # Непонятное значение фильтр не включает
        assert len(_ids(client.get("/posts", params={"isFeatured": "maybe"}))) == 2

    def test_status_and_author_filters_combine(self, client, user, other_user, make_post):
        target = make_post(user, status=PostStatus.DRAFT)
        make_post(user, status=PostStatus.PUBLISHED)
        make_post(other_user, status=PostStatus.DRAFT)

        response = client.get("/posts", params={"status": "DRAFT", "authorId": user.id})

        assert _ids(response) == [target.id]
        assert response.json()["pagination"]["total"] == 1

    def test_items_carry_comment_count(self, client, user, make_post, make_comment):
        post = make_post(user)
        make_comment(post, user)
        make_comment(post, user, status=CommentStatus.PENDING)

        item = client.get("/posts").json()["data"][0]

        assert item["comment_count"] == 2


class TestGetPost:
    def test_each_fetch_adds_one_view(self, client, user, make_post):
        post = make_post(user)

        first = client.get(f"/posts/{post.id}").json()
        second = client.get(f"/posts/{post.id}").json()

        assert first["views"] == 1
        assert second["views"] == 2

    def test_missing_post_is_404(self, client):
        response = client.get("/posts/999")

        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"


class TestCreatePost:
    def test_create_post_for_current_user(self, client, user, headers_for):
        response = client.post(
            "/posts",
            json={"title": "Hello", "content": "World", "tags": ["intro", "intro", "misc"]},
            headers=headers_for(user),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["author_id"] == user.id
        assert body["tags"] == ["intro", "misc"]
        assert body["is_featured"] is False
        assert body["views"] == 0
        assert body["status"] == "PUBLISHED"

    def test_featured_flag_cannot_be_set_on_create(self, client, user, headers_for):
        response = client.post(
            "/posts",
            json={"title": "Hello", "content": "World", "is_featured": True},
            headers=headers_for(user),
        )

        assert response.json()["is_featured"] is False

    def test_empty_title_is_validation_error(self, client, user, headers_for):
        response = client.post(
            "/posts",
            json={"title": "", "content": "World"},
            headers=headers_for(user),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestUpdatePost:
    def test_owner_can_update_but_not_feature(self, client, user, make_post, headers_for):
        post = make_post(user)

        response = client.patch(
            f"/posts/{post.id}",
            json={"title": "Renamed", "is_featured": True, "tags": ["new"]},
            headers=headers_for(user),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Renamed"
        assert body["tags"] == ["new"]
        assert body["is_featured"] is False

    def test_admin_can_feature_any_post(self, client, user, admin, make_post, headers_for):
        post = make_post(user)

        response = client.patch(
            f"/posts/{post.id}",
            json={"is_featured": True},
            headers=headers_for(admin),
        )

        assert response.status_code == 200
        assert response.json()["is_featured"] is True

    def test_non_owner_cannot_update(self, client, user, other_user, make_post, headers_for):
        post = make_post(user, title="Original")

        response = client.patch(
            f"/posts/{post.id}",
            json={"title": "Hijacked"},
            headers=headers_for(other_user),
        )

        assert response.status_code == 403
        assert client.get("/posts").json()["data"][0]["title"] == "Original"

    def test_update_missing_post_is_404(self, client, user, headers_for):
        response = client.patch("/posts/404", json={"title": "x"}, headers=headers_for(user))
        assert response.status_code == 404

    @pytest.mark.parametrize("field", ["title", "content", "status", "is_featured"])
    def test_explicit_null_is_validation_error(self, client, admin, make_post, headers_for, field):
        post = make_post(admin, title="Kept")

        response = client.patch(f"/posts/{post.id}", json={field: None}, headers=headers_for(admin))

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert client.get(f"/posts/{post.id}").json()["title"] == "Kept"

    def test_thumbnail_can_be_cleared(self, client, user, make_post, headers_for):
        post = make_post(user, thumbnail="https://example.com/a.png")

        response = client.patch(f"/posts/{post.id}", json={"thumbnail": None}, headers=headers_for(user))

        assert response.status_code == 200
        assert response.json()["thumbnail"] is None


class TestDeletePost:
    def test_owner_deletes_post_and_comments(self, client, user, make_post, make_comment, headers_for):
        post = make_post(user)
        make_comment(post, user)

        response = client.delete(f"/posts/{post.id}", headers=headers_for(user))

        assert response.status_code == 200
        assert response.json()["id"] == post.id
        assert client.get(f"/posts/{post.id}").status_code == 404
        assert client.get(f"/comments/author/{user.id}").json() == []

    def test_admin_deletes_any_post(self, client, user, admin, make_post, headers_for):
        post = make_post(user)

        response = client.delete(f"/posts/{post.id}", headers=headers_for(admin))

        assert response.status_code == 200

    def test_non_owner_cannot_delete(self, client, user, other_user, make_post, headers_for):
        post = make_post(user)

        response = client.delete(f"/posts/{post.id}", headers=headers_for(other_user))

        assert response.status_code == 403
        assert client.get(f"/posts/{post.id}").status_code == 200


class TestMyPosts:
    def test_only_own_posts_newest_first(self, client, user, other_user, make_post, headers_for):
        older = make_post(user)
        newer = make_post(user, status=PostStatus.DRAFT)
        make_post(other_user)

        body = client.get("/posts/my-posts", headers=headers_for(user)).json()

        assert [p["id"] for p in body["data"]] == [newer.id, older.id]
        assert body["total"] == 2

    def test_blocked_user_is_stopped_at_the_gate(self, client, make_user, headers_for):
        blocked = make_user(status=UserStatus.BLOCKED)

        response = client.get("/posts/my-posts", headers=headers_for(blocked))

        assert response.status_code == 403
        assert response.json()["error"] == "account_blocked"

    def test_service_reports_inactive_user_as_missing(self, db, make_user):
        blocked = make_user(status=UserStatus.BLOCKED)

        with pytest.raises(NotFound):
            post_service.get_my_posts(db, blocked)


class TestStats:
    @pytest.fixture
    def populated(self, user, admin, make_post, make_comment):
        published = make_post(user, status=PostStatus.PUBLISHED, views=10, is_featured=True)
        make_post(user, status=PostStatus.DRAFT, views=5)
        make_post(admin, status=PostStatus.ARCHIVED)
        make_comment(published, user)
        make_comment(published, admin, status=CommentStatus.REJECTED)

    def test_snapshot_counts(self, client, admin, populated, headers_for):
        stats = client.get("/posts/stats", headers=headers_for(admin)).json()

        assert stats == {
            "total_posts": 3,
            "published_posts": 1,
            "draft_posts": 1,
            "featured_posts": 1,
            "total_comments": 2,
            "approved_comments": 1,
            "total_users": 2,
            "admin_count": 1,
            "user_count": 1,
            "total_views": 15,
        }
        assert stats["published_posts"] + stats["draft_posts"] <= stats["total_posts"]
        assert stats["admin_count"] + stats["user_count"] <= stats["total_users"]

    def test_empty_database_sums_to_zero_views(self, client, admin, headers_for):
        stats = client.get("/posts/stats", headers=headers_for(admin)).json()

        assert stats["total_posts"] == 0
        assert stats["total_views"] == 0
        assert stats["total_users"] == 1
