import logging
import re
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field, field_validator
from pymongo.database import Database

from database import COLL_USER, create_document, get_db, parse_object_id, utcnow
from dependencies import get_email_service, get_settings_dep
from errors import EmailServiceError
from schemas import User
from security import (
    create_session,
    get_token,
    hash_password,
    hash_token,
    new_token,
    public_user,
    require_user,
    revoke_session,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
RESET_MESSAGE = "If a user with that email exists, a password reset link has been sent."


def _check_password(value: str) -> str:
    if not PASSWORD_RE.match(value):
        raise ValueError("Password must contain at least one uppercase letter, one lowercase letter, and one number")
    return value


# -----------------------------
# Request models
# -----------------------------
class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    interests: List[str] = []
    gdpr_consent: bool

    @field_validator("name")
    @classmethod
    def name_letters_only(cls, value: str) -> str:
        value = value.strip()
        if not NAME_RE.match(value):
            raise ValueError("Name can only contain letters and spaces")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("gdpr_consent")
    @classmethod
    def consent_given(cls, value: bool) -> bool:
        if not value:
            raise ValueError("GDPR consent is required")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password(value)


# -----------------------------
# Routes
# -----------------------------
@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db), email=Depends(get_email_service)):
    address = payload.email.lower()
    if db[COLL_USER].find_one({"email": address}):
        raise HTTPException(status_code=400, detail="User already exists with this email")

    verification_token = new_token()
    user = User(
        name=payload.name,
        email=address,
        password_hash=hash_password(payload.password),
        interests=[oid for oid in (parse_object_id(i) for i in payload.interests) if oid],
        verification_token=verification_token,
        gdpr_consent=True,
        gdpr_consent_date=utcnow(),
    )
    user_id = create_document(db, COLL_USER, user)

    try:
        email.send_verification_email(address, payload.name, verification_token)
    except EmailServiceError as e:
        # registration still succeeds; the user can ask for a new link
        logger.error(f"Error sending verification email: {e}")

    return {
        "status": "success",
        "message": "User registered successfully. Please check your email to verify your account.",
        "data": {"user": {"id": user_id, "name": user.name, "email": address, "is_verified": False}},
    }


@router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db), settings=Depends(get_settings_dep)):
    user = db[COLL_USER].find_one({"email": payload.email.lower()})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.get("is_verified"):
        raise HTTPException(status_code=401, detail="Please verify your email before logging in")

    now = utcnow()
    db[COLL_USER].update_one({"_id": user["_id"]}, {"$set": {"last_active": now}})
    user["last_active"] = now
    token = create_session(db, user["_id"], ttl_days=settings.session_ttl_days)
    return {
        "status": "success",
        "message": "Login successful",
        "data": {"access_token": token, "user": public_user(user)},
    }


@router.post("/logout")
def logout(token: str = Depends(get_token), user: dict = Depends(require_user), db: Database = Depends(get_db)):
    revoke_session(db, token)
    return {"status": "success", "message": "Logout successful"}


@router.get("/verify-email/{token}")
def verify_email(token: str, db: Database = Depends(get_db), email=Depends(get_email_service)):
    user = db[COLL_USER].find_one({"verification_token": token})
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    db[COLL_USER].update_one(
        {"_id": user["_id"]},
        {"$set": {"is_verified": True, "updated_at": utcnow()}, "$unset": {"verification_token": ""}},
    )
    try:
        email.send_welcome_email(user["email"], user.get("name", ""))
    except EmailServiceError as e:
        logger.error(f"Error sending welcome email: {e}")
    return {"status": "success", "message": "Email verified successfully. You can now log in."}


@router.post("/resend-verification")
def resend_verification(payload: EmailRequest, db: Database = Depends(get_db), email=Depends(get_email_service)):
    user = db[COLL_USER].find_one({"email": payload.email.lower()})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.get("is_verified"):
        raise HTTPException(status_code=400, detail="User is already verified")

    verification_token = new_token()
    db[COLL_USER].update_one({"_id": user["_id"]}, {"$set": {"verification_token": verification_token}})
    try:
        email.send_verification_email(user["email"], user.get("name", ""), verification_token)
    except EmailServiceError as e:
        logger.error(f"Error sending verification email: {e}")
        raise HTTPException(status_code=500, detail="Failed to send verification email")
    return {"status": "success", "message": "Verification email sent successfully"}


@router.post("/forgot-password")
def forgot_password(
    payload: EmailRequest,
    db: Database = Depends(get_db),
    email=Depends(get_email_service),
    settings=Depends(get_settings_dep),
):
    user = db[COLL_USER].find_one({"email": payload.email.lower()})
    if not user:
        # same answer whether or not the account exists
        return {"status": "success", "message": RESET_MESSAGE}

    reset_token = new_token()
    expires = utcnow() + timedelta(minutes=settings.password_reset_ttl_minutes)
    db[COLL_USER].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_reset_token": hash_token(reset_token), "password_reset_expires": expires}},
    )
    try:
        email.send_password_reset_email(user["email"], user.get("name", ""), reset_token)
    except EmailServiceError as e:
        logger.error(f"Error sending password reset email: {e}")
        db[COLL_USER].update_one(
            {"_id": user["_id"]}, {"$unset": {"password_reset_token": "", "password_reset_expires": ""}}
        )
        raise HTTPException(status_code=500, detail="Failed to send password reset email")
    return {"status": "success", "message": RESET_MESSAGE}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, db: Database = Depends(get_db)):
    user = db[COLL_USER].find_one(
        {"password_reset_token": hash_token(payload.token), "password_reset_expires": {"$gt": utcnow()}}
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    db[COLL_USER].update_one(
        {"_id": user["_id"]},
        {
            "$set": {"password_hash": hash_password(payload.password), "updated_at": utcnow()},
            "$unset": {"password_reset_token": "", "password_reset_expires": ""},
        },
    )
    return {"status": "success", "message": "Password reset successfully. You can now log in with your new password."}


@router.get("/me")
def me(user: dict = Depends(require_user)):
    return {"status": "success", "data": {"user": public_user(user)}}
