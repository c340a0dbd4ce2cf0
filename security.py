"""Password hashing, session tokens, auth dependencies and user text sanitizing."""
import hashlib
import hmac
import html
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends, Header, HTTPException
from fastapi.exceptions import RequestValidationError
from pymongo.database import Database

from database import COLL_SESSION, COLL_USER, as_utc, get_db, utcnow
from schemas import Session

PBKDF2_ITERATIONS = 100_000


def sanitize(text: Optional[str], field: str, max_length: Optional[int] = None) -> Optional[str]:
    """HTML-escape user text, enforcing ``max_length`` on the escaped value that gets stored."""
    if not text:
        return text
    escaped = html.escape(text.strip())
    if max_length is not None and len(escaped) > max_length:
        raise RequestValidationError([{
            "type": "string_too_long",
            "loc": ("body", field),
            "msg": f"String should have at most {max_length} characters once HTML is escaped",
            "input": text,
        }])
    return escaped


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, _ = stored.split("$", 1)
    return hmac.compare_digest(hash_password(password, salt), stored)


def new_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(db: Database, user_id: ObjectId, ttl_days: int = 7) -> str:
    token = secrets.token_urlsafe(32)
    session = Session(user_id=user_id, token=token, expires_at=utcnow() + timedelta(days=ttl_days))
    doc = session.model_dump()
    doc["created_at"] = utcnow()
    db[COLL_SESSION].insert_one(doc)
    return token


def revoke_session(db: Database, token: str) -> None:
    db[COLL_SESSION].delete_one({"token": token})


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _resolve_user(db: Database, token: str) -> Dict[str, Any]:
    session = db[COLL_SESSION].find_one({"token": token})
    if not session:
        raise HTTPException(status_code=401, detail="Invalid access token")
    if as_utc(session["expires_at"]) <= utcnow():
        revoke_session(db, token)
        raise HTTPException(status_code=401, detail="Access token expired")
    user = db[COLL_USER].find_one({"_id": session["user_id"]})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.get("is_verified"):
        raise HTTPException(status_code=401, detail="Please verify your email to access this resource")
    return user


def get_token(authorization: Optional[str] = Header(default=None)) -> str:
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Access token is required")
    return token


def require_user(token: str = Depends(get_token), db: Database = Depends(get_db)) -> Dict[str, Any]:
    return _resolve_user(db, token)


def optional_user(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
) -> Optional[Dict[str, Any]]:
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        return _resolve_user(db, token)
    except HTTPException:
        return None


def require_admin(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    return user


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User fields safe to return to the client."""
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "profile_picture": user.get("profile_picture"),
        "bio": user.get("bio", ""),
        "interests": [str(i) for i in user.get("interests") or []],
        "role": user.get("role", "user"),
        "is_verified": user.get("is_verified", False),
        "email_preferences": user.get("email_preferences") or {},
        "last_active": user.get("last_active"),
        "gdpr_consent": user.get("gdpr_consent", False),
    }
