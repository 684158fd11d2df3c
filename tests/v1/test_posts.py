# tests/v1/test_posts.py
"""Tests for the post HTTP endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from folio_stage.api.v1.dependencies import create_access_token

POSTS = "/api/v1/posts"

BODIES = [
    {"type": "text", "content": "Hello"},
    {"type": "quote", "content": {"text": "Brevity", "by": "Polonius"}},
]


def _create(client: TestClient, headers: dict[str, str], **fields) -> dict:
    fields.setdefault("title", fields.get("slug", "Untitled"))
    response = client.post(POSTS, json=fields, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestCreatePost:
    def test_create_returns_content_and_nodes(self, client, auth_headers, test_user, clock):
        post = _create(client, auth_headers, slug="hello", title="Hello", content=BODIES)

        assert post["status"] == "draft"
        assert post["created"] == post["published"] == clock.now
        assert post["author"] == test_user.id
        assert [post["nodes"][node_id] for node_id in post["content"]] == BODIES

    def test_create_requires_authentication(self, client):
        response = client.post(POSTS, json={"slug": "x", "title": "X"})
        assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    def test_token_for_unknown_user_is_rejected(self, client):
        token = create_access_token("no-such-user")
        response = client.post(
            POSTS,
            json={"slug": "x", "title": "X"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_malformed_token_is_rejected(self, client):
        response = client.get(POSTS, headers={"Authorization": "Bearer not.a.valid.jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_supplied_id_is_a_bad_request(self, client, auth_headers):
        response = client.post(
            POSTS,
            json={"id": "mine", "slug": "x", "title": "X"},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "New post data has a forbidden property id"

    def test_unknown_field_is_rejected(self, client, auth_headers):
        response = client.post(
            POSTS,
            json={"slug": "x", "title": "X", "created": 5},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_slug_is_rejected(self, client, auth_headers):
        response = client.post(POSTS, json={"slug": "Not A Slug", "title": "X"}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_duplicate_slug_conflicts(self, client, auth_headers):
        _create(client, auth_headers, slug="dupe")
        response = client.post(POSTS, json={"slug": "dupe", "title": "Again"}, headers=auth_headers)
        assert response.status_code == status.HTTP_409_CONFLICT


class TestReadPosts:
    def test_owner_sees_draft_anonymous_does_not(self, client, auth_headers):
        post = _create(client, auth_headers, slug="draft")

        assert client.get(f"{POSTS}/{post['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"{POSTS}/{post['id']}").status_code == status.HTTP_404_NOT_FOUND
        assert client.get(f"{POSTS}/slug/draft").status_code == status.HTTP_404_NOT_FOUND

    def test_get_by_slug(self, client, auth_headers):
        post = _create(client, auth_headers, slug="by-slug")
        response = client.get(f"{POSTS}/slug/by-slug", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == post["id"]
        assert "content" not in response.json()

    def test_missing_post(self, client, auth_headers):
        response = client.get(f"{POSTS}/00000000-0000-0000-0000-000000000000", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_include_content_and_author(self, client, auth_headers, test_user):
        post = _create(client, auth_headers, slug="rich", content=BODIES)

        response = client.get(
            f"{POSTS}/{post['id']}",
            params={"include": ["content", "author"]},
            headers=auth_headers,
        )
        body = response.json()
        assert body["content"] == post["content"]
        assert body["nodes"] == post["nodes"]
        assert body["author"] == {"id": test_user.id, "name": "Ada", "email": test_user.email}

    def test_unknown_include_is_rejected_at_the_edge(self, client, auth_headers):
        response = client.get(POSTS, params={"include": "comments"}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_anonymous_collection_only_sees_published(self, client, auth_headers, clock):
        _create(client, auth_headers, slug="draft")
        live = _create(client, auth_headers, slug="live", status="published")
        _create(client, auth_headers, slug="soon", status="published", published=clock.now + 60_000)

        response = client.get(POSTS, params={"status": "draft"})
        assert response.status_code == 200
        assert [post["id"] for post in response.json()] == [live["id"]]

        everything = client.get(POSTS, params={"status": "*"}, headers=auth_headers)
        assert len(everything.json()) == 3

    def test_quantity_returns_a_count(self, client, auth_headers):
        for slug in ("a1", "a2", "a3"):
            _create(client, auth_headers, slug=slug)
        response = client.get(POSTS, params={"quantity": "true", "limit": 1}, headers=auth_headers)
        assert response.json() == 3

    def test_anonymous_range_includes_post_published_now(self, client, auth_headers, clock):
        live = _create(client, auth_headers, slug="now", status="published")
        assert live["published"] == clock.now

        for published in ([0, clock.now * 2], [clock.now, clock.now + 60_000]):
            response = client.get(POSTS, params={"published": published})
            assert [post["id"] for post in response.json()] == [live["id"]]
        assert client.get(f"{POSTS}/slug/now").status_code == 200

    def test_filters_by_tag_and_created_range(self, client, auth_headers, clock):
        tagged = _create(client, auth_headers, slug="tagged", tags=["a", "b"])
        clock.tick()
        other = _create(client, auth_headers, slug="other", tags=["c"])

        response = client.get(POSTS, params={"tags": "a"}, headers=auth_headers)
        assert [post["id"] for post in response.json()] == [tagged["id"]]

        response = client.get(POSTS, params={"tags": "-a"}, headers=auth_headers)
        assert [post["id"] for post in response.json()] == [other["id"]]

        response = client.get(
            POSTS,
            params={"created": [other["created"], other["created"] + 1]},
            headers=auth_headers,
        )
        assert [post["id"] for post in response.json()] == [other["id"]]

    def test_too_many_date_values(self, client, auth_headers):
        response = client.get(POSTS, params={"created": [1, 2, 3]}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_order(self, client, auth_headers):
        response = client.get(POSTS, params={"order": "title"}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestUpdatePost:
    def test_publish_makes_post_public(self, client, auth_headers, clock):
        post = _create(client, auth_headers, slug="news")
        clock.tick(10_000)

        response = client.patch(f"{POSTS}/{post['id']}", json={"status": "published"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"id": post["id"]}

        public = client.get(f"{POSTS}/slug/news")
        assert public.status_code == 200
        assert public.json()["published"] == clock.now

    def test_update_to_own_slug(self, client, auth_headers):
        post = _create(client, auth_headers, slug="mine")
        response = client.patch(f"{POSTS}/{post['id']}", json={"slug": "mine"}, headers=auth_headers)
        assert response.status_code == 200

    def test_update_to_taken_slug(self, client, auth_headers):
        _create(client, auth_headers, slug="first")
        second = _create(client, auth_headers, slug="second")
        response = client.patch(f"{POSTS}/{second['id']}", json={"slug": "first"}, headers=auth_headers)
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_missing_post(self, client, auth_headers):
        response = client.patch(
            f"{POSTS}/00000000-0000-0000-0000-000000000000",
            json={"title": "Nope"},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_empty_update_is_rejected(self, client, auth_headers):
        post = _create(client, auth_headers, slug="empty")
        response = client.patch(f"{POSTS}/{post['id']}", json={}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_content_must_name_each_existing_node_once(self, client, auth_headers):
        post = _create(client, auth_headers, slug="nodes", content=BODIES)
        first = post["content"][0]
        url = f"{POSTS}/{post['id']}"

        response = client.patch(url, json={"content": [first, first]}, headers=auth_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        stranger = "00000000-0000-0000-0000-000000000000"
        response = client.patch(url, json={"content": [first, stranger]}, headers=auth_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = client.patch(url, json={"content": [first]}, headers=auth_headers)
        assert response.status_code == 200
        stored = client.get(url, params={"include": "content"}, headers=auth_headers).json()
        assert stored["content"] == [first]
        assert list(stored["nodes"]) == [first]


class TestDeletePost:
    def test_delete_then_missing(self, client, auth_headers):
        post = _create(client, auth_headers, slug="bye", content=BODIES)

        response = client.delete(f"{POSTS}/{post['id']}", headers=auth_headers)
        assert response.json() == {"id": post["id"]}

        assert client.get(f"{POSTS}/{post['id']}", headers=auth_headers).status_code == 404
        assert client.delete(f"{POSTS}/{post['id']}", headers=auth_headers).status_code == 404

    def test_delete_requires_authentication(self, client, auth_headers):
        post = _create(client, auth_headers, slug="keep")
        response = client.delete(f"{POSTS}/{post['id']}")
        assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


class TestNodeEndpoints:
    def test_insert_and_remove_nodes(self, client, auth_headers):
        post = _create(client, auth_headers, slug="nodes", content=BODIES)

        response = client.post(
            f"{POSTS}/{post['id']}/nodes",
            json={"node": {"type": "text", "content": "intro"}, "index": 0},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_201_CREATED
        intro = response.json()["id"]

        content = client.get(
            f"{POSTS}/{post['id']}", params={"include": "content"}, headers=auth_headers
        ).json()["content"]
        assert content == [intro, *post["content"]]

        removed = client.delete(f"{POSTS}/{post['id']}/nodes/{intro}", headers=auth_headers)
        assert removed.json() == {"id": intro}

        content = client.get(
            f"{POSTS}/{post['id']}", params={"include": "content"}, headers=auth_headers
        ).json()["content"]
        assert content == post["content"]

    def test_node_on_missing_post(self, client, auth_headers):
        response = client.post(
            f"{POSTS}/00000000-0000-0000-0000-000000000000/nodes",
            json={"node": {"type": "text", "content": "x"}},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_node_body_is_validated(self, client, auth_headers):
        post = _create(client, auth_headers, slug="strict")
        response = client.post(
            f"{POSTS}/{post['id']}/nodes",
            json={"node": {"type": "", "content": "x"}},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
