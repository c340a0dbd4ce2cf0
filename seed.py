"""Startup initialization: the admin user and the default categories."""
import logging

from pymongo.database import Database

from database import COLL_CATEGORY, COLL_USER, create_document, utcnow
from schemas import Category, User
from security import hash_password
from settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {
        "name": "Technology",
        "slug": "technology",
        "description": "Latest developments in technology, AI, software, and innovation",
        "color": "#00A4EF",
    },
    {
        "name": "Politics",
        "slug": "politics",
        "description": "Political news, government updates, and policy discussions",
        "color": "#8B5CF6",
    },
    {
        "name": "Business",
        "slug": "business",
        "description": "Business news, market updates, and economic insights",
        "color": "#10B981",
    },
    {
        "name": "Sports",
        "slug": "sports",
        "description": "Sports news, match updates, and athletic achievements",
        "color": "#F59E0B",
    },
    {
        "name": "Health",
        "slug": "health",
        "description": "Health news, medical breakthroughs, and wellness tips",
        "color": "#EF4444",
    },
    {
        "name": "Science",
        "slug": "science",
        "description": "Scientific discoveries, research findings, and innovations",
        "color": "#06B6D4",
    },
    {
        "name": "Entertainment",
        "slug": "entertainment",
        "description": "Entertainment news, celebrity updates, and cultural events",
        "color": "#EC4899",
    },
    {
        "name": "World",
        "slug": "world",
        "description": "International news and global affairs",
        "color": "#84CC16",
    },
]


def initialize_app(db: Database, settings: Settings) -> None:
    logger.info("Initializing application...")

    if db[COLL_USER].find_one({"role": "admin"}):
        logger.info("Admin user already exists")
    else:
        logger.info("Creating admin user...")
        admin = User(
            name="Admin",
            email=settings.admin_email.lower(),
            password_hash=hash_password(settings.admin_password),
            role="admin",
            is_verified=True,
            gdpr_consent=True,
            gdpr_consent_date=utcnow(),
        )
        create_document(db, COLL_USER, admin)
        logger.info("Admin user created successfully")

    for data in DEFAULT_CATEGORIES:
        if not db[COLL_CATEGORY].find_one({"slug": data["slug"]}):
            create_document(db, COLL_CATEGORY, Category(**data))
            logger.info(f"Created category: {data['name']}")

    logger.info("Application initialization completed successfully")
