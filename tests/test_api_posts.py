"""Post creation, feed and interactions over HTTP."""
from bson import ObjectId

from database import COLL_CATEGORY, COLL_POST
from errors import AIClientError
from schemas import Post
from store import insert_post

from conftest import auth_headers, make_user


def category_id(db, slug):
    return db[COLL_CATEGORY].find_one({"slug": slug})["_id"]


def create(client, headers, **payload):
    payload.setdefault("content", "The new phone ships with a faster chip.")
    return client.post("/api/posts", headers=headers, json=payload)


class TestCreatePost:
    def test_ai_categorizes_and_tags(self, client, db, ai, reader_headers):
        ai.generate.side_effect = ["Technology", "phones, chips"]

        response = create(client, reader_headers)

        assert response.status_code == 201
        post = response.json()["data"]["post"]
        assert [c["slug"] for c in post["categories"]] == ["technology"]
        assert post["tags"] == ["phones", "chips"]
        assert post["author"]["name"] == "Reader"
        assert post["is_news"] is False

    def test_explicit_categories_skip_categorization(self, client, db, ai, reader_headers):
        ai.generate.side_effect = ["tag"]
        sports = str(category_id(db, "sports"))

        response = create(client, reader_headers, categories=[sports])

        assert response.status_code == 201
        assert response.json()["data"]["post"]["categories"][0]["id"] == sports
        assert ai.generate.call_count == 1

    def test_ai_failure_still_creates_post(self, client, ai, reader_headers):
        ai.generate.side_effect = AIClientError("down")

        response = create(client, reader_headers)

        post = response.json()["data"]["post"]
        assert response.status_code == 201
        assert post["categories"] == []
        assert post["tags"] == []

    def test_content_is_escaped(self, client, ai, reader_headers):
        ai.generate.return_value = "none"
        response = create(client, reader_headers, content="<script>alert(1)</script>")
        assert response.json()["data"]["post"]["content"] == "&lt;script&gt;alert(1)&lt;/script&gt;"

    def test_link_post(self, client, ai, reader_headers):
        ai.generate.return_value = "none"
        response = create(client, reader_headers, type="link", link_url="https://example.com/story")
        assert response.json()["data"]["post"]["link"]["url"] == "https://example.com/story"

    def test_requires_auth(self, client):
        assert create(client, {}).status_code == 401

    def test_invalid_category(self, client, reader_headers):
        assert create(client, reader_headers, categories=["bogus"]).status_code == 400


def test_view_increments_views_and_engagement(client, db, reader):
    post = insert_post(db, Post(content="hello", author=reader["_id"]))

    for _ in range(2):
        response = client.get(f"/api/posts/{post['_id']}")
        assert response.status_code == 200

    stored = db[COLL_POST].find_one({"_id": post["_id"]})
    assert stored["views"] == 2
    assert stored["engagement"] == 2 * 0.1


def test_missing_post(client):
    assert client.get(f"/api/posts/{ObjectId()}").status_code == 404
    assert client.get("/api/posts/not-an-id").status_code == 404


def test_like_toggle_comment_share_report(client, db, reader, reader_headers):
    post = insert_post(db, Post(content="hello", author=reader["_id"]))
    url = f"/api/posts/{post['_id']}"

    liked = client.post(f"{url}/like", headers=reader_headers).json()["data"]
    assert liked == {"liked": True, "like_count": 1}
    unliked = client.post(f"{url}/like", headers=reader_headers).json()["data"]
    assert unliked == {"liked": False, "like_count": 0}

    response = client.post(f"{url}/comment", headers=reader_headers, json={"content": "Nice"})
    assert response.status_code == 201
    comment = response.json()["data"]["comment"]
    assert comment["user"]["name"] == "Reader"

    share = client.post(f"{url}/share", headers=reader_headers).json()["data"]
    assert share == {"share_count": 1}

    stored = db[COLL_POST].find_one({"_id": post["_id"]})
    assert stored["engagement"] == 5 + 7

    response = client.delete(f"{url}/comment/{comment['id']}", headers=reader_headers)
    assert response.json()["data"]["comment_count"] == 0

    assert client.post(f"{url}/report", headers=reader_headers, json={"reason": "spam"}).status_code == 200
    again = client.post(f"{url}/report", headers=reader_headers, json={"reason": "spam"})
    assert again.status_code == 400


def test_only_author_or_admin_can_edit(client, db, reader, reader_headers, admin_headers):
    post = insert_post(db, Post(content="mine", author=reader["_id"]))
    other = auth_headers(db, make_user(db, email="other@example.com", name="Other"))

    response = client.put(f"/api/posts/{post['_id']}", headers=other, json={"content": "hijack"})
    assert response.status_code == 403

    response = client.put(f"/api/posts/{post['_id']}", headers=reader_headers, json={"content": "edited"})
    assert response.json()["data"]["post"]["content"] == "edited"

    assert client.delete(f"/api/posts/{post['_id']}", headers=admin_headers).status_code == 200
    assert db[COLL_POST].find_one({"_id": post["_id"]})["is_active"] is False
    assert client.get(f"/api/posts/{post['_id']}").status_code == 404


class TestFeed:
    def test_pagination_and_filters(self, client, db, reader):
        tech = category_id(db, "technology")
        for i in range(3):
            insert_post(db, Post(content=f"tech {i}", author=reader["_id"], categories=[tech]))
        insert_post(db, Post(content="sport", author=reader["_id"], categories=[category_id(db, "sports")]))
        insert_post(db, Post(content="gone", author=reader["_id"], is_active=False))

        data = client.get("/api/posts", params={"limit": 2}).json()["data"]
        assert len(data["posts"]) == 2
        assert data["pagination"]["total_posts"] == 4
        assert data["pagination"]["has_next_page"] is True

        data = client.get("/api/posts", params={"category": str(tech)}).json()["data"]
        assert data["pagination"]["total_posts"] == 3

        data = client.get("/api/posts", params={"search": "SPORT"}).json()["data"]
        assert [p["content"] for p in data["posts"]] == ["sport"]

    def test_popular_sorts_by_engagement(self, client, db, reader):
        insert_post(db, Post(content="quiet", author=reader["_id"]))
        insert_post(db, Post(content="loud", author=reader["_id"], shares=5))

        posts = client.get("/api/posts", params={"sort_by": "popular"}).json()["data"]["posts"]
        assert posts[0]["content"] == "loud"

    def test_interests_come_first(self, client, db):
        tech = category_id(db, "technology")
        fan = make_user(db, email="fan@example.com", name="Fan", interests=[tech])
        insert_post(db, Post(content="tech", author=fan["_id"], categories=[tech]))
        insert_post(db, Post(content="popular other", author=fan["_id"], shares=10))

        posts = client.get("/api/posts", params={"sort_by": "popular"}, headers=auth_headers(db, fan)).json()
        assert posts["data"]["posts"][0]["content"] == "tech"

    def test_interest_pages_cross_into_other_posts(self, client, db):
        tech = category_id(db, "technology")
        fan = make_user(db, email="fan@example.com", name="Fan", interests=[tech])
        headers = auth_headers(db, fan)
        insert_post(db, Post(content="tech a", author=fan["_id"], categories=[tech], shares=2))
        insert_post(db, Post(content="tech b", author=fan["_id"], categories=[tech]))
        insert_post(db, Post(content="other c", author=fan["_id"], shares=5))
        insert_post(db, Post(content="other d", author=fan["_id"], categories=[category_id(db, "sports")], shares=1))

        def page(number, limit):
            params = {"sort_by": "popular", "page": number, "limit": limit}
            data = client.get("/api/posts", params=params, headers=headers).json()["data"]
            return [p["content"] for p in data["posts"]], data["pagination"]

        assert [page(n, 1)[0] for n in range(1, 5)] == [["tech a"], ["tech b"], ["other c"], ["other d"]]

        first, pages = page(1, 3)
        assert first == ["tech a", "tech b", "other c"]
        assert pages["total_posts"] == 4
        assert page(2, 3)[0] == ["other d"]

    def test_limit_is_capped(self, client):
        assert client.get("/api/posts", params={"limit": 51}).status_code == 400

    def test_trending_today(self, client, db, reader):
        insert_post(db, Post(content="today", author=reader["_id"], views=3))
        posts = client.get("/api/posts/trending/today").json()["data"]["posts"]
        assert [p["content"] for p in posts] == ["today"]


class TestEscapedLength:
    def test_create_rejects_content_that_grows_past_limit(self, client, db, ai, reader_headers):
        ai.generate.return_value = "none"

        response = create(client, reader_headers, content="<" * 4000)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert body["errors"][0]["field"] == "content"
        assert db[COLL_POST].count_documents({}) == 0

    def test_update_rejects_content_that_grows_past_limit(self, client, db, reader, reader_headers):
        post = insert_post(db, Post(content="mine", author=reader["_id"]))

        response = client.put(f"/api/posts/{post['_id']}", headers=reader_headers, json={"content": "&" * 2000})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "content"
        assert db[COLL_POST].find_one({"_id": post["_id"]})["content"] == "mine"

    def test_comment_rejects_content_that_grows_past_limit(self, client, db, reader, reader_headers):
        post = insert_post(db, Post(content="hello", author=reader["_id"]))

        response = client.post(f"/api/posts/{post['_id']}/comment", headers=reader_headers, json={"content": '"' * 300})

        assert response.status_code == 400
        assert db[COLL_POST].find_one({"_id": post["_id"]})["comments"] == []
