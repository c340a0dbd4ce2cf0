import logging
import re
from datetime import timedelta
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from database import (
    COLL_CATEGORY,
    COLL_CONTACT,
    COLL_POST,
    COLL_USER,
    get_db,
    parse_object_id,
    serialize,
    utcnow,
)
from dependencies import get_news_client, get_pipeline, get_scheduler
from errors import IngestionError
from routers.categories import CategoryRequest, create_category
from routers.posts import pagination
from security import public_user, require_admin
from store import populate_posts, save_post

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class UserStatusRequest(BaseModel):
    is_verified: Optional[bool] = None
    role: Optional[Literal["user", "admin"]] = None


class PostStatusRequest(BaseModel):
    is_active: bool


class ContactStatusRequest(BaseModel):
    status: Literal["new", "in-progress", "resolved"]
    admin_notes: Optional[str] = Field(None, max_length=1000)


@router.get("/dashboard")
def dashboard(db: Database = Depends(get_db)):
    week_ago = utcnow() - timedelta(days=7)
    stats = {
        "total_users": db[COLL_USER].count_documents({}),
        "verified_users": db[COLL_USER].count_documents({"is_verified": True}),
        "new_users_this_week": db[COLL_USER].count_documents({"created_at": {"$gte": week_ago}}),
        "total_posts": db[COLL_POST].count_documents({"is_active": True}),
        "news_posts": db[COLL_POST].count_documents({"is_active": True, "is_news": True}),
        "posts_this_week": db[COLL_POST].count_documents({"is_active": True, "created_at": {"$gte": week_ago}}),
        "reported_posts": db[COLL_POST].count_documents({"reported_by.0": {"$exists": True}}),
        "total_categories": db[COLL_CATEGORY].count_documents({"is_active": True}),
        "new_contacts": db[COLL_CONTACT].count_documents({"status": "new"}),
    }
    recent_posts = db[COLL_POST].find({"is_active": True}).sort([("created_at", DESCENDING)]).limit(5)
    return {
        "status": "success",
        "data": {"stats": stats, "recent_posts": serialize(populate_posts(db, recent_posts))},
    }


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    db: Database = Depends(get_db),
):
    query = {}
    if search:
        regex = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": regex}, {"email": regex}]
    total = db[COLL_USER].count_documents(query)
    users = db[COLL_USER].find(query).sort([("created_at", DESCENDING)]).skip((page - 1) * limit).limit(limit)
    result = pagination(page, limit, total)
    result["total_users"] = result.pop("total_posts")
    return {
        "status": "success",
        "data": {"users": serialize([public_user(u) for u in users]), "pagination": result},
    }


@router.put("/users/{user_id}/status")
def update_user_status(user_id: str, payload: UserStatusRequest, db: Database = Depends(get_db)):
    oid = parse_object_id(user_id)
    user = db[COLL_USER].find_one({"_id": oid}) if oid else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    updates = payload.model_dump(exclude_none=True)
    if updates:
        updates["updated_at"] = utcnow()
        db[COLL_USER].update_one({"_id": oid}, {"$set": updates})
    user = db[COLL_USER].find_one({"_id": oid})
    return {"status": "success", "message": "User status updated successfully", "data": {"user": public_user(user)}}


@router.get("/posts")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    reported: bool = False,
    is_news: Optional[bool] = None,
    db: Database = Depends(get_db),
):
    query = {}
    if reported:
        query["reported_by.0"] = {"$exists": True}
    if is_news is not None:
        query["is_news"] = is_news
    total = db[COLL_POST].count_documents(query)
    posts = db[COLL_POST].find(query).sort([("created_at", DESCENDING)]).skip((page - 1) * limit).limit(limit)
    return {
        "status": "success",
        "data": {"posts": serialize(populate_posts(db, posts)), "pagination": pagination(page, limit, total)},
    }


@router.put("/posts/{post_id}/status")
def update_post_status(post_id: str, payload: PostStatusRequest, db: Database = Depends(get_db)):
    oid = parse_object_id(post_id)
    post = db[COLL_POST].find_one({"_id": oid}) if oid else None
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    post["is_active"] = payload.is_active
    save_post(db, post)
    state = "activated" if payload.is_active else "deactivated"
    return {"status": "success", "message": f"Post {state} successfully"}


@router.get("/categories")
def list_categories(db: Database = Depends(get_db)):
    counts = {
        row["_id"]: row["count"]
        for row in db[COLL_POST].aggregate(
            [
                {"$match": {"is_active": True}},
                {"$unwind": "$categories"},
                {"$group": {"_id": "$categories", "count": {"$sum": 1}}},
            ]
        )
    }
    categories = []
    for category in db[COLL_CATEGORY].find({}).sort([("name", ASCENDING)]):
        category["post_count"] = counts.get(category["_id"], 0)
        categories.append(category)
    return {"status": "success", "data": {"categories": serialize(categories)}}


@router.post("/categories", status_code=201)
def add_category(payload: CategoryRequest, db: Database = Depends(get_db)):
    category = create_category(db, payload)
    return {"status": "success", "message": "Category created successfully", "data": {"category": serialize(category)}}


@router.post("/news/fetch")
def fetch_news(pipeline=Depends(get_pipeline)):
    """Run one ingestion pass now and report its counts."""
    logger.info("Manual news fetch triggered")
    try:
        result = pipeline.run()
    except IngestionError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch news: {e}")
    return {
        "status": "success",
        "message": "News fetch completed",
        "data": result.to_dict(),
    }


@router.get("/news/status")
def news_status(scheduler=Depends(get_scheduler), news_client=Depends(get_news_client)):
    stats = scheduler.get_stats() if scheduler is not None else {"running": False, "jobs": {}}
    stats["news_api_configured"] = news_client.is_configured()
    return {"status": "success", "data": stats}


@router.get("/news/search")
def search_news(
    q: str = Query(..., min_length=1, max_length=200),
    topic: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    news_client=Depends(get_news_client),
):
    return {"status": "success", "data": news_client.search_news(q, topic=topic, page=page, page_size=page_size)}


@router.get("/news/breaking")
def breaking_news(hours: int = Query(2, ge=1, le=48), news_client=Depends(get_news_client)):
    return {"status": "success", "data": {"articles": news_client.fetch_breaking_news(hours=hours)}}


@router.get("/contacts")
def list_contacts(
    status: Optional[Literal["new", "in-progress", "resolved"]] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    query = {"status": status} if status else {}
    total = db[COLL_CONTACT].count_documents(query)
    contacts = db[COLL_CONTACT].find(query).sort([("created_at", DESCENDING)]).skip((page - 1) * limit).limit(limit)
    result = pagination(page, limit, total)
    result["total_contacts"] = result.pop("total_posts")
    return {"status": "success", "data": {"contacts": serialize(list(contacts)), "pagination": result}}


@router.put("/contacts/{contact_id}/status")
def update_contact_status(contact_id: str, payload: ContactStatusRequest, db: Database = Depends(get_db)):
    oid = parse_object_id(contact_id)
    updates = payload.model_dump(exclude_none=True)
    updates["updated_at"] = utcnow()
    result = db[COLL_CONTACT].update_one({"_id": oid}, {"$set": updates}) if oid else None
    if result is None or result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Contact not found")
    contact = db[COLL_CONTACT].find_one({"_id": oid})
    return {"status": "success", "message": "Contact status updated successfully", "data": {"contact": serialize(contact)}}
