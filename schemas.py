"""
Database Schemas for the Intelixir social news platform

Each Pydantic model represents a collection in MongoDB. The collection name is the lowercase class name.
References between documents are stored as ObjectIds.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime, timezone

from bson import ObjectId

DEFAULT_CATEGORY_COLOR = "#00A4EF"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def compute_engagement(likes: int, comments: int, shares: int, views: int) -> float:
    """Engagement score used for ranking: likes*3 + comments*5 + shares*7 + views*0.1."""
    return likes * 3 + comments * 5 + shares * 7 + views * 0.1


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class EmailPreferences(BaseModel):
    digest_frequency: str = Field("daily", description="daily | weekly | instant | never")
    breaking_news: bool = True


class User(Document):
    name: str = Field(..., max_length=50)
    email: str = Field(..., description="Unique, lower-cased")
    password_hash: str
    profile_picture: Optional[str] = None
    bio: str = Field("", max_length=500)
    interests: List[ObjectId] = Field(default_factory=list, description="Category ids")
    role: str = Field("user", description="user | admin")
    is_verified: bool = False
    email_preferences: EmailPreferences = Field(default_factory=EmailPreferences)
    verification_token: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    last_active: datetime = Field(default_factory=_now)
    gdpr_consent: bool = False
    gdpr_consent_date: Optional[datetime] = None


class Session(Document):
    user_id: ObjectId
    token: str
    expires_at: datetime


class Category(Document):
    name: str
    slug: str
    description: str = Field("", max_length=200)
    color: str = DEFAULT_CATEGORY_COLOR
    is_active: bool = True


class LinkPreview(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class Like(Document):
    user: ObjectId
    created_at: datetime = Field(default_factory=_now)


class Comment(Document):
    id: ObjectId = Field(default_factory=ObjectId)
    user: ObjectId
    content: str = Field(..., min_length=1, max_length=1000)
    created_at: datetime = Field(default_factory=_now)


class Report(Document):
    user: ObjectId
    reason: str
    created_at: datetime = Field(default_factory=_now)


class Post(Document):
    title: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., max_length=5000)
    author: ObjectId
    type: str = Field("text", description="text | image | link | news")
    image: Optional[str] = None
    link: Optional[LinkPreview] = None
    categories: List[ObjectId] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_news: bool = False
    original_source: Optional[str] = Field(None, description="Source URL of an ingested article")
    published_at: Optional[datetime] = None
    likes: List[Like] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
    shares: int = 0
    views: int = 0
    engagement: float = 0.0
    is_active: bool = True
    reported_by: List[Report] = Field(default_factory=list)


class Contact(Document):
    name: str = Field(..., max_length=100)
    email: str
    subject: str = Field(..., max_length=200)
    message: str = Field(..., max_length=2000)
    status: str = Field("new", description="new | in-progress | resolved")
    admin_notes: Optional[str] = Field(None, max_length=1000)


class ClickedPost(Document):
    post: ObjectId
    clicked_at: datetime = Field(default_factory=_now)


class EmailDigest(Document):
    user: ObjectId
    posts: List[ObjectId] = Field(default_factory=list)
    digest_type: str = Field(..., description="daily | weekly | breaking")
    sent_at: datetime = Field(default_factory=_now)
    email_opened: bool = False
    clicked_posts: List[ClickedPost] = Field(default_factory=list)
