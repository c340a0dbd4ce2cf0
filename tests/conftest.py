"""
Shared fixtures: an in-memory MongoDB, fake external collaborators and a
TestClient over a fully wired application.
"""
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import COLL_CATEGORY, COLL_USER, create_document
from email_service import EmailConfig, EmailService
from main import create_app
from schemas import Category, User
from security import create_session, hash_password
from settings import Settings

ADMIN_PASSWORD = "Admin123"


def make_article(url="https://example.com/a1", title="Chip makers rally", **overrides):
    article = {
        "title": title,
        "description": "Semiconductor stocks climbed on strong demand.",
        "content": "Full article text about chips.",
        "url": url,
        "urlToImage": "https://example.com/a1.jpg",
        "publishedAt": "2024-05-01T10:00:00Z",
    }
    article.update(overrides)
    return article


REWRITE_OK = "TITLE: Chips surge on demand\nSUMMARY: Semiconductor makers gained ground.\nTAGS: chips, Markets, AI"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ingestion_enabled=False,
        digest_enabled=False,
        ingestion_topic_delay_seconds=0,
        admin_password=ADMIN_PASSWORD,
        smtp_user="",
        smtp_password="",
        gemini_api_key=None,
        news_api_key=None,
    )


@pytest.fixture
def db():
    return mongomock.MongoClient(tz_aware=True)["intelixir_test"]


@pytest.fixture
def admin(db):
    user = User(
        name="Admin",
        email="admin@intelixir.com",
        password_hash=hash_password(ADMIN_PASSWORD),
        role="admin",
        is_verified=True,
        gdpr_consent=True,
    )
    create_document(db, COLL_USER, user)
    return db[COLL_USER].find_one({"email": "admin@intelixir.com"})


@pytest.fixture
def technology(db):
    create_document(db, COLL_CATEGORY, Category(name="Technology", slug="technology"))
    return db[COLL_CATEGORY].find_one({"slug": "technology"})


@pytest.fixture
def ai():
    ai = MagicMock()
    ai.generate.return_value = REWRITE_OK
    return ai


@pytest.fixture
def news_client():
    client = MagicMock()
    client.search.return_value = []
    client.is_configured.return_value = True
    return client


@pytest.fixture
def email_service():
    return EmailService(EmailConfig(smtp_host="", smtp_port=587, smtp_user="", smtp_password="", from_email=""))


@pytest.fixture
def app(settings, db, ai, news_client, email_service):
    app = create_app(settings)
    app.state.db = db
    app.state.ai = ai
    app.state.news_client = news_client
    app.state.email = email_service
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def make_user(db, email="reader@example.com", name="Reader", role="user", verified=True, **fields):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password("Secret123"),
        role=role,
        is_verified=verified,
        gdpr_consent=True,
        **fields,
    )
    create_document(db, COLL_USER, user)
    return db[COLL_USER].find_one({"email": email})


def auth_headers(db, user):
    return {"Authorization": f"Bearer {create_session(db, user['_id'])}"}


@pytest.fixture
def reader(client, db):
    return make_user(db)


@pytest.fixture
def reader_headers(db, reader):
    return auth_headers(db, reader)


@pytest.fixture
def admin_headers(client, db):
    # seeded by the application lifespan
    admin = db[COLL_USER].find_one({"role": "admin"})
    return auth_headers(db, admin)
