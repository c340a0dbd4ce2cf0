"""Admin, category, contact and digest endpoints."""
from unittest.mock import patch

from bson import ObjectId

from database import COLL_CATEGORY, COLL_CONTACT, COLL_DIGEST, COLL_POST, COLL_USER
from errors import NewsSourceError
from schemas import Post
from store import insert_post

from conftest import make_article


class TestManualNewsFetch:
    def test_returns_counts(self, client, db, news_client, admin_headers):
        news_client.search.side_effect = lambda keywords, page_size: (
            [make_article()] if "technology" in keywords else []
        )

        response = client.post("/api/admin/news/fetch", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"success": 1, "failed": 0}
        post = db[COLL_POST].find_one({"is_news": True})
        assert post["original_source"] == "https://example.com/a1"

        # second trigger finds the same article and stores nothing new
        response = client.post("/api/admin/news/fetch", headers=admin_headers)
        assert response.json()["data"] == {"success": 0, "failed": 0}
        assert db[COLL_POST].count_documents({"is_news": True}) == 1

    def test_source_errors_are_counted(self, client, news_client, admin_headers):
        news_client.search.side_effect = NewsSourceError("apiKeyInvalid")

        response = client.post("/api/admin/news/fetch", headers=admin_headers)

        assert response.json()["data"] == {"success": 0, "failed": 8}

    def test_missing_admin_is_server_error(self, client, app, db, news_client, admin_headers):
        with patch.object(app.state.pipeline, "db") as pipeline_db:
            pipeline_db.__getitem__.return_value.find_one.return_value = None
            response = client.post("/api/admin/news/fetch", headers=admin_headers)

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Failed to fetch news: Admin user not found"}
        news_client.search.assert_not_called()

    def test_requires_admin(self, client, reader_headers):
        assert client.post("/api/admin/news/fetch", headers=reader_headers).status_code == 403
        assert client.post("/api/admin/news/fetch").status_code == 401


def test_news_status_and_search(client, news_client, admin_headers):
    news_client.search_news.return_value = {"articles": [], "total_results": 0}

    status = client.get("/api/admin/news/status", headers=admin_headers).json()["data"]
    assert status["running"] is False
    assert status["news_api_configured"] is True

    response = client.get("/api/admin/news/search", headers=admin_headers, params={"q": "chips", "topic": "technology"})
    assert response.json()["data"] == {"articles": [], "total_results": 0}
    news_client.search_news.assert_called_once_with("chips", topic="technology", page=1, page_size=10)


def test_dashboard_and_moderation(client, db, reader, admin_headers):
    post = insert_post(db, Post(content="x", author=reader["_id"]))

    stats = client.get("/api/admin/dashboard", headers=admin_headers).json()["data"]["stats"]
    assert stats["total_posts"] == 1
    assert stats["total_categories"] == 8

    response = client.put(f"/api/admin/posts/{post['_id']}/status", headers=admin_headers, json={"is_active": False})
    assert response.status_code == 200
    assert db[COLL_POST].find_one({"_id": post["_id"]})["is_active"] is False

    response = client.put(f"/api/admin/users/{reader['_id']}/status", headers=admin_headers, json={"role": "admin"})
    assert response.json()["data"]["user"]["role"] == "admin"

    users = client.get("/api/admin/users", headers=admin_headers, params={"search": "reader"}).json()["data"]
    assert users["pagination"]["total_users"] == 1


def test_admin_categories_have_post_counts(client, db, reader, admin_headers):
    categories = client.get("/api/admin/categories", headers=admin_headers).json()["data"]["categories"]
    tech = next(c for c in categories if c["slug"] == "technology")
    insert_post(db, Post(content="x", author=reader["_id"], categories=[ObjectId(tech["id"])]))

    categories = client.get("/api/admin/categories", headers=admin_headers).json()["data"]["categories"]
    counts = {c["slug"]: c["post_count"] for c in categories}
    assert counts["technology"] == 1
    assert counts["sports"] == 0


class TestCategories:
    def test_public_list_and_lookup(self, client):
        categories = client.get("/api/categories").json()["data"]["categories"]
        assert len(categories) == 8
        assert client.get("/api/categories/science").json()["data"]["category"]["name"] == "Science"
        assert client.get("/api/categories/cooking").status_code == 404

    def test_admin_crud(self, client, admin_headers, reader_headers):
        payload = {"name": "Local News", "description": "Around town", "color": "#123ABC"}
        assert client.post("/api/categories", headers=reader_headers, json=payload).status_code == 403

        response = client.post("/api/categories", headers=admin_headers, json=payload)
        assert response.status_code == 201
        assert response.json()["data"]["category"]["slug"] == "local-news"

        assert client.post("/api/categories", headers=admin_headers, json=payload).status_code == 400

        response = client.put("/api/categories/local-news", headers=admin_headers, json={"color": "#000000"})
        assert response.json()["data"]["category"]["color"] == "#000000"

        assert client.delete("/api/categories/local-news", headers=admin_headers).status_code == 200
        assert client.get("/api/categories/local-news").status_code == 404

    def test_bad_color(self, client, admin_headers):
        response = client.post("/api/categories", headers=admin_headers, json={"name": "Art", "color": "red"})
        assert response.status_code == 400

    def test_rename_needs_letters_or_numbers(self, client, db, admin_headers):
        response = client.put("/api/categories/science", headers=admin_headers, json={"name": "!!!"})

        assert response.status_code == 400
        assert response.json()["message"] == "Category name must contain letters or numbers"
        assert db[COLL_CATEGORY].find_one({"slug": "science"})["name"] == "Science"


def test_contact_flow(client, db, email_service, admin_headers):
    with patch.object(email_service, "send_contact_notification") as notify:
        response = client.post(
            "/api/contact",
            json={"name": "Sam", "email": "sam@example.com", "subject": "Hi", "message": "I love the new feed!"},
        )
    assert response.status_code == 201
    notify.assert_called_once()
    contact_id = response.json()["data"]["id"]
    assert db[COLL_CONTACT].find_one({"_id": ObjectId(contact_id)})["status"] == "new"

    response = client.put(
        f"/api/admin/contacts/{contact_id}/status", headers=admin_headers, json={"status": "resolved"}
    )
    assert response.json()["data"]["contact"]["status"] == "resolved"
    contacts = client.get("/api/admin/contacts", headers=admin_headers, params={"status": "resolved"}).json()
    assert contacts["data"]["pagination"]["total_contacts"] == 1


def test_contact_validation(client):
    response = client.post("/api/contact", json={"name": "S", "email": "bad", "subject": "", "message": "short"})
    assert response.status_code == 400


def test_contact_message_checked_after_escaping(client, db):
    response = client.post(
        "/api/contact",
        json={"name": "Sam", "email": "sam@example.com", "subject": "Hi", "message": "'" * 1500},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "message"
    assert db[COLL_CONTACT].count_documents({}) == 0


def test_contact_notification_gets_submitted_text(client, db, email_service):
    message = "Tom's <b>great</b> feed & more"
    with patch.object(email_service, "send_contact_notification") as notify:
        client.post(
            "/api/contact",
            json={"name": "Sam & Co", "email": "sam@example.com", "subject": "Hi", "message": message},
        )

    sent = notify.call_args.args[0]
    assert sent == {"name": "Sam & Co", "email": "sam@example.com", "subject": "Hi", "message": message}
    stored = db[COLL_CONTACT].find_one({})
    assert stored["message"] == "Tom&#x27;s &lt;b&gt;great&lt;/b&gt; feed &amp; more"

    html = email_service.render("contact_notification.html.j2", contact=sent)
    assert "&lt;b&gt;great&lt;/b&gt; feed &amp; more" in html
    assert "Sam &amp; Co" in html
    assert "&amp;lt;" not in html
    assert "&amp;amp;" not in html


def test_digest_preview_and_generate(client, db, reader, reader_headers, admin_headers):
    insert_post(db, Post(content="fresh", author=reader["_id"]))

    preview = client.get("/api/digest", headers=reader_headers).json()["data"]
    assert [p["content"] for p in preview["posts"]] == ["fresh"]

    response = client.post(
        "/api/digest/generate", headers=admin_headers, json={"user_id": str(reader["_id"]), "digest_type": "daily"}
    )
    assert response.status_code == 200
    assert response.json()["data"]["digest"]["digest_type"] == "daily"
    assert db[COLL_DIGEST].count_documents({"user": reader["_id"]}) == 1

    assert client.post("/api/digest/generate", headers=reader_headers, json={"user_id": str(reader["_id"])}).status_code == 403
    missing = client.post("/api/digest/generate", headers=admin_headers, json={"user_id": str(ObjectId())})
    assert missing.status_code == 404
    assert db[COLL_USER].count_documents({}) == 2
