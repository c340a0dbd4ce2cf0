import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from pymongo.database import Database

from database import COLL_USER, get_db, parse_object_id, serialize, utcnow
from dependencies import get_digest_service
from digest import DIGEST_WINDOWS
from errors import EmailServiceError
from security import require_admin, require_user
from store import populate_posts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/digest", tags=["digest"])

DigestType = Literal["daily", "weekly", "breaking"]


class GenerateDigestRequest(BaseModel):
    user_id: str
    digest_type: DigestType = "daily"


@router.get("")
def preview_digest(
    digest_type: DigestType = Query("daily"),
    user: dict = Depends(require_user),
    db: Database = Depends(get_db),
    digest=Depends(get_digest_service),
):
    posts = digest.select_posts(user, utcnow() - DIGEST_WINDOWS[digest_type])
    return {
        "status": "success",
        "data": {"digest_type": digest_type, "posts": serialize(populate_posts(db, posts))},
    }


@router.post("/generate")
def generate_digest(
    payload: GenerateDigestRequest,
    admin: dict = Depends(require_admin),
    db: Database = Depends(get_db),
    digest=Depends(get_digest_service),
):
    oid = parse_object_id(payload.user_id)
    user = db[COLL_USER].find_one({"_id": oid}) if oid else None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        record = digest.send_digest(user, payload.digest_type)
    except EmailServiceError as e:
        logger.error(f"Error sending digest to {user.get('email')}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send digest email")

    if record is None:
        return {"status": "success", "message": "No posts available for this digest", "data": {"digest": None}}
    return {"status": "success", "message": "Digest sent successfully", "data": {"digest": serialize(record)}}
