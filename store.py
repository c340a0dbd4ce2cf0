"""Post store: persistence for user and AI-sourced posts."""
from typing import Any, Dict, Iterable, List, Union

from pymongo.database import Database

from database import COLL_CATEGORY, COLL_POST, COLL_USER, utcnow
from schemas import Post, compute_engagement

AUTHOR_FIELDS = {"name": 1, "profile_picture": 1}
CATEGORY_FIELDS = {"name": 1, "color": 1, "slug": 1}


def refresh_engagement(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["engagement"] = compute_engagement(
        likes=len(doc.get("likes") or []),
        comments=len(doc.get("comments") or []),
        shares=doc.get("shares") or 0,
        views=doc.get("views") or 0,
    )
    return doc


def news_post_exists(db: Database, url: str) -> bool:
    """Whether an article URL was already ingested, active or not."""
    return db[COLL_POST].find_one({"original_source": url, "is_news": True}, {"_id": 1}) is not None


def insert_post(db: Database, post: Union[Post, Dict[str, Any]]) -> Dict[str, Any]:
    doc = post.model_dump() if isinstance(post, Post) else dict(post)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    refresh_engagement(doc)
    doc["_id"] = db[COLL_POST].insert_one(doc).inserted_id
    return doc


def save_post(db: Database, doc: Dict[str, Any]) -> Dict[str, Any]:
    refresh_engagement(doc)
    doc["updated_at"] = utcnow()
    db[COLL_POST].replace_one({"_id": doc["_id"]}, doc)
    return doc


def populate_posts(db: Database, posts: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Resolve author, category and comment-user references for API output."""
    posts = list(posts)
    user_ids = set()
    category_ids = set()
    for post in posts:
        user_ids.add(post.get("author"))
        user_ids.update(c.get("user") for c in post.get("comments") or [])
        category_ids.update(post.get("categories") or [])
    user_ids.discard(None)

    users = {u["_id"]: u for u in db[COLL_USER].find({"_id": {"$in": list(user_ids)}}, AUTHOR_FIELDS)}
    categories = {
        c["_id"]: c for c in db[COLL_CATEGORY].find({"_id": {"$in": list(category_ids)}}, CATEGORY_FIELDS)
    }

    populated = []
    for post in posts:
        item = dict(post)
        item["author"] = users.get(post.get("author"), {"_id": post.get("author")})
        item["categories"] = [categories[c] for c in post.get("categories") or [] if c in categories]
        item["comments"] = [
            {**comment, "user": users.get(comment.get("user"), {"_id": comment.get("user")})}
            for comment in post.get("comments") or []
        ]
        item["like_count"] = len(post.get("likes") or [])
        item["comment_count"] = len(post.get("comments") or [])
        populated.append(item)
    return populated
