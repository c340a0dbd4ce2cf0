import logging
import math
import re
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, HttpUrl
from pymongo import DESCENDING
from pymongo.database import Database

from database import COLL_POST, get_db, parse_object_id, serialize, utcnow
from dependencies import get_enricher
from schemas import Comment, LinkPreview, Like, Post, Report
from security import optional_user, require_user, sanitize
from store import insert_post, populate_posts, save_post

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

SORTS = {
    "recent": [("created_at", DESCENDING)],
    "popular": [("engagement", DESCENDING), ("created_at", DESCENDING)],
    "trending": [("engagement", DESCENDING), ("created_at", DESCENDING)],
}


# -----------------------------
# Request models
# -----------------------------
class PostCreateRequest(BaseModel):
    content: str = Field(..., max_length=5000)
    title: Optional[str] = Field(None, max_length=200)
    type: Literal["text", "image", "link"] = "text"
    image: Optional[str] = None
    link_url: Optional[HttpUrl] = None
    categories: Union[List[str], str, None] = None


class PostUpdateRequest(BaseModel):
    content: Optional[str] = Field(None, max_length=5000)
    title: Optional[str] = Field(None, max_length=200)
    type: Optional[Literal["text", "image", "link"]] = None
    image: Optional[str] = None
    link_url: Optional[HttpUrl] = None
    categories: Union[List[str], str, None] = None


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


# -----------------------------
# Helpers
# -----------------------------
def to_object_ids(values: Union[List[str], str, None]) -> List[ObjectId]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    ids = []
    for value in values:
        oid = parse_object_id(value)
        if oid is None:
            raise HTTPException(status_code=400, detail=f"Invalid category ID: {value}")
        ids.append(oid)
    return ids


def link_preview(url: str) -> LinkPreview:
    # metadata scraping is not done; the frontend renders the bare link
    return LinkPreview(url=url, title="Shared Link", description="Check out this interesting link")


def load_post(db: Database, post_id: str, include_inactive: bool = False) -> Dict[str, Any]:
    oid = parse_object_id(post_id)
    post = db[COLL_POST].find_one({"_id": oid}) if oid else None
    if not post or (not include_inactive and not post.get("is_active", True)):
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def ensure_owner_or_admin(owner_id: Any, user: Dict[str, Any], action: str) -> None:
    if owner_id != user["_id"] and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail=f"Not authorized to {action}")


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_posts": total,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def interest_first_page(
    db: Database,
    query: Dict[str, Any],
    interests: List[ObjectId],
    sort: List[Any],
    skip: int,
    limit: int,
) -> List[Dict[str, Any]]:
    """One feed page with posts in the reader's interests ahead of the rest.

    The two groups are paged separately in the database; each keeps the requested sort.
    """
    matching = {"$and": [query, {"categories": {"$in": interests}}]}
    others = {"$and": [query, {"categories": {"$nin": interests}}]}
    matching_total = db[COLL_POST].count_documents(matching)

    posts = []
    if skip < matching_total:
        posts = list(db[COLL_POST].find(matching).sort(sort).skip(skip).limit(limit))
    remaining = limit - len(posts)
    if remaining > 0:
        other_skip = max(skip - matching_total, 0)
        posts.extend(db[COLL_POST].find(others).sort(sort).skip(other_skip).limit(remaining))
    return posts


def post_response(db: Database, post: Dict[str, Any]) -> Dict[str, Any]:
    return serialize(populate_posts(db, [post])[0])


# -----------------------------
# Routes
# -----------------------------
@router.get("")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    category: Optional[str] = None,
    author: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: Literal["recent", "popular", "trending"] = "recent",
    user: Optional[dict] = Depends(optional_user),
    db: Database = Depends(get_db),
):
    query: Dict[str, Any] = {"is_active": True}
    if category:
        oid = parse_object_id(category)
        if oid is None:
            raise HTTPException(status_code=400, detail="Invalid category ID")
        query["categories"] = oid
    if author:
        oid = parse_object_id(author)
        if oid is None:
            raise HTTPException(status_code=400, detail="Invalid author ID")
        query["author"] = oid
    if search:
        pattern = re.escape(search)
        regex = {"$regex": pattern, "$options": "i"}
        query["$or"] = [{"title": regex}, {"content": regex}, {"tags": regex}]
    if sort_by == "trending":
        query["created_at"] = {"$gte": utcnow() - timedelta(days=1)}

    skip = (page - 1) * limit
    total = db[COLL_POST].count_documents(query)

    interests = (user or {}).get("interests") or []
    if interests:
        posts = interest_first_page(db, query, interests, SORTS[sort_by], skip, limit)
    else:
        posts = list(db[COLL_POST].find(query).sort(SORTS[sort_by]).skip(skip).limit(limit))

    return {
        "status": "success",
        "data": {
            "posts": serialize(populate_posts(db, posts)),
            "pagination": pagination(page, limit, total),
        },
    }


@router.get("/trending/today")
def trending_today(db: Database = Depends(get_db)):
    start_of_day = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
    posts = (
        db[COLL_POST]
        .find({"is_active": True, "created_at": {"$gte": start_of_day}})
        .sort([("engagement", DESCENDING)])
        .limit(10)
    )
    return {"status": "success", "data": {"posts": serialize(populate_posts(db, posts))}}


@router.get("/{post_id}")
def get_post(post_id: str, db: Database = Depends(get_db)):
    post = load_post(db, post_id)
    post["views"] = post.get("views", 0) + 1
    save_post(db, post)
    return {"status": "success", "data": {"post": post_response(db, post)}}


@router.post("", status_code=201)
def create_post(
    payload: PostCreateRequest,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
    enricher=Depends(get_enricher),
):
    content = sanitize(payload.content, "content", 5000)
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")

    categories = to_object_ids(payload.categories)
    post = Post(
        content=content,
        title=sanitize(payload.title, "title", 200) or None,
        author=user["_id"],
        type=payload.type,
        categories=categories,
        is_news=False,
    )
    if payload.type == "image" and payload.image:
        post.image = payload.image
    if payload.type == "link" and payload.link_url:
        post.link = link_preview(str(payload.link_url))

    if not categories:
        post.categories = enricher.categorize(content)
    post.tags = enricher.generate_tags(content)

    doc = insert_post(db, post)
    logger.info(f"Post {doc['_id']} created by {user['_id']}")
    return {
        "status": "success",
        "message": "Post created successfully",
        "data": {"post": post_response(db, doc)},
    }


@router.put("/{post_id}")
def update_post(
    post_id: str,
    payload: PostUpdateRequest,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
):
    post = load_post(db, post_id, include_inactive=True)
    ensure_owner_or_admin(post["author"], user, "update this post")

    if payload.content:
        post["content"] = sanitize(payload.content, "content", 5000)
    if payload.title:
        post["title"] = sanitize(payload.title, "title", 200)
    if payload.type:
        post["type"] = payload.type
    if payload.categories is not None:
        post["categories"] = to_object_ids(payload.categories)
    if payload.type == "image" and payload.image:
        post["image"] = payload.image
    if payload.type == "link" and payload.link_url:
        post["link"] = link_preview(str(payload.link_url)).model_dump()

    save_post(db, post)
    return {
        "status": "success",
        "message": "Post updated successfully",
        "data": {"post": post_response(db, post)},
    }


@router.delete("/{post_id}")
def delete_post(post_id: str, user: dict = Depends(require_user), db: Database = Depends(get_db)):
    post = load_post(db, post_id, include_inactive=True)
    ensure_owner_or_admin(post["author"], user, "delete this post")
    post["is_active"] = False
    save_post(db, post)
    return {"status": "success", "message": "Post deleted successfully"}


@router.post("/{post_id}/like")
def toggle_like(post_id: str, user: dict = Depends(require_user), db: Database = Depends(get_db)):
    post = load_post(db, post_id)
    likes = post.setdefault("likes", [])
    existing = next((i for i, like in enumerate(likes) if like.get("user") == user["_id"]), None)
    if existing is not None:
        likes.pop(existing)
    else:
        likes.append(Like(user=user["_id"]).model_dump())
    save_post(db, post)

    liked = existing is None
    return {
        "status": "success",
        "message": "Post liked" if liked else "Post unliked",
        "data": {"liked": liked, "like_count": len(likes)},
    }


@router.post("/{post_id}/comment", status_code=201)
def add_comment(
    post_id: str,
    payload: CommentRequest,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
):
    post = load_post(db, post_id)
    content = sanitize(payload.content, "content", 1000)
    if not content:
        raise HTTPException(status_code=400, detail="Comment must be between 1 and 1000 characters")
    comment = Comment(user=user["_id"], content=content).model_dump()
    post.setdefault("comments", []).append(comment)
    save_post(db, post)

    added = populate_posts(db, [post])[0]["comments"][-1]
    return {
        "status": "success",
        "message": "Comment added successfully",
        "data": {"comment": serialize(added), "comment_count": len(post["comments"])},
    }


@router.delete("/{post_id}/comment/{comment_id}")
def delete_comment(
    post_id: str,
    comment_id: str,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
):
    post = load_post(db, post_id)
    comment_oid = parse_object_id(comment_id)
    comments = post.get("comments") or []
    comment = next((c for c in comments if comment_oid and c.get("id") == comment_oid), None)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    ensure_owner_or_admin(comment["user"], user, "delete this comment")

    post["comments"] = [c for c in comments if c is not comment]
    save_post(db, post)
    return {
        "status": "success",
        "message": "Comment deleted successfully",
        "data": {"comment_count": len(post["comments"])},
    }


@router.post("/{post_id}/share")
def share_post(post_id: str, user: dict = Depends(require_user), db: Database = Depends(get_db)):
    post = load_post(db, post_id)
    post["shares"] = post.get("shares", 0) + 1
    save_post(db, post)
    return {"status": "success", "message": "Post shared successfully", "data": {"share_count": post["shares"]}}


@router.post("/{post_id}/report")
def report_post(
    post_id: str,
    payload: ReportRequest,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
):
    post = load_post(db, post_id)
    reports = post.setdefault("reported_by", [])
    if any(r.get("user") == user["_id"] for r in reports):
        raise HTTPException(status_code=400, detail="You have already reported this post")
    reports.append(Report(user=user["_id"], reason=sanitize(payload.reason, "reason", 500)).model_dump())
    save_post(db, post)
    return {"status": "success", "message": "Post reported successfully. Our team will review it shortly."}
