from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from pymongo.database import Database

from database import COLL_CATEGORY, COLL_POST, COLL_USER, get_db, parse_object_id, utcnow
from security import public_user, require_user

router = APIRouter(prefix="/users", tags=["users"])


class EmailPreferencesUpdate(BaseModel):
    digest_frequency: Optional[Literal["daily", "weekly", "instant", "never"]] = None
    breaking_news: Optional[bool] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    profile_picture: Optional[str] = None
    interests: Optional[List[str]] = None
    email_preferences: Optional[EmailPreferencesUpdate] = None


@router.get("/me")
def my_profile(user: dict = Depends(require_user), db: Database = Depends(get_db)):
    data = public_user(user)
    data["post_count"] = db[COLL_POST].count_documents({"author": user["_id"], "is_active": True})
    return {"status": "success", "data": {"user": data}}


@router.put("/me")
def update_profile(
    payload: ProfileUpdateRequest,
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
):
    updates = {}
    if payload.name is not None:
        updates["name"] = payload.name.strip()
    if payload.bio is not None:
        updates["bio"] = payload.bio.strip()
    if payload.profile_picture is not None:
        updates["profile_picture"] = payload.profile_picture
    if payload.interests is not None:
        ids = [parse_object_id(i) for i in payload.interests]
        if any(i is None for i in ids):
            raise HTTPException(status_code=400, detail="Invalid category ID in interests")
        known = db[COLL_CATEGORY].count_documents({"_id": {"$in": ids}, "is_active": True})
        if known != len(set(ids)):
            raise HTTPException(status_code=400, detail="Unknown category in interests")
        updates["interests"] = ids
    if payload.email_preferences is not None:
        for key, value in payload.email_preferences.model_dump(exclude_none=True).items():
            updates[f"email_preferences.{key}"] = value

    if updates:
        updates["updated_at"] = utcnow()
        db[COLL_USER].update_one({"_id": user["_id"]}, {"$set": updates})
    user = db[COLL_USER].find_one({"_id": user["_id"]})
    return {"status": "success", "message": "Profile updated successfully", "data": {"user": public_user(user)}}


@router.get("/{user_id}")
def get_profile(user_id: str, db: Database = Depends(get_db)):
    oid = parse_object_id(user_id)
    user = db[COLL_USER].find_one({"_id": oid}) if oid else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    profile = {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "profile_picture": user.get("profile_picture"),
        "bio": user.get("bio", ""),
        "created_at": user.get("created_at"),
        "post_count": db[COLL_POST].count_documents({"author": user["_id"], "is_active": True}),
    }
    return {"status": "success", "data": {"user": profile}}
