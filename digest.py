"""Email digests: the best recent posts for each user, sent on a schedule."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.database import Database

from database import COLL_DIGEST, COLL_POST, COLL_USER, create_document, serialize, utcnow
from errors import EmailServiceError
from schemas import EmailDigest

logger = logging.getLogger(__name__)

DIGEST_WINDOWS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "breaking": timedelta(hours=2),
}


class DigestService:
    def __init__(self, db: Database, email, max_posts: int = 10):
        self.db = db
        self.email = email
        self.max_posts = max_posts

    def select_posts(self, user: Dict[str, Any], since: datetime, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"is_active": True, "created_at": {"$gte": since}}
        interests = user.get("interests") or []
        if interests:
            query["categories"] = {"$in": interests}
        cursor = (
            self.db[COLL_POST]
            .find(query)
            .sort([("engagement", DESCENDING), ("created_at", DESCENDING)])
            .limit(limit or self.max_posts)
        )
        return list(cursor)

    def send_digest(self, user: Dict[str, Any], digest_type: str = "daily") -> Optional[Dict[str, Any]]:
        window = DIGEST_WINDOWS.get(digest_type)
        if window is None:
            raise ValueError(f"Unknown digest type: {digest_type}")

        posts = self.select_posts(user, utcnow() - window)
        if not posts:
            logger.info(f"No posts for {digest_type} digest of {user.get('email')}")
            return None

        self.email.send_digest_email(user, serialize(posts), digest_type)
        digest = EmailDigest(user=user["_id"], posts=[p["_id"] for p in posts], digest_type=digest_type)
        digest_id = create_document(self.db, COLL_DIGEST, digest)
        return self.db[COLL_DIGEST].find_one({"_id": ObjectId(digest_id)})

    def send_daily_digests(self) -> Dict[str, int]:
        counts = {"sent": 0, "skipped": 0, "failed": 0}
        users = self.db[COLL_USER].find(
            {"is_verified": True, "email_preferences.digest_frequency": "daily"}
        )
        for user in users:
            try:
                digest = self.send_digest(user, "daily")
            except EmailServiceError as e:
                logger.error(f"Error sending digest to {user.get('email')}: {e}")
                counts["failed"] += 1
                continue
            if digest is None:
                counts["skipped"] += 1
            else:
                counts["sent"] += 1
        logger.info(f"Daily digests: {counts}")
        return counts
