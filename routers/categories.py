import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from pymongo import ASCENDING
from pymongo.database import Database

from database import COLL_CATEGORY, create_document, get_db, serialize, utcnow
from schemas import DEFAULT_CATEGORY_COLOR, Category
from security import require_admin

router = APIRouter(prefix="/categories", tags=["categories"])

COLOR_RE = r"^#[0-9A-Fa-f]{6}$"


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def category_slug(name: str) -> str:
    slug = slugify(name)
    if not slug:
        raise HTTPException(status_code=400, detail="Category name must contain letters or numbers")
    return slug


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field("", max_length=200)
    color: str = Field(DEFAULT_CATEGORY_COLOR, pattern=COLOR_RE)


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=COLOR_RE)
    is_active: Optional[bool] = None


def create_category(db: Database, payload: CategoryRequest) -> dict:
    name = payload.name.strip()
    slug = category_slug(name)
    if db[COLL_CATEGORY].find_one({"$or": [{"slug": slug}, {"name": name}]}):
        raise HTTPException(status_code=400, detail="Category already exists")
    category = Category(name=name, slug=slug, description=payload.description.strip(), color=payload.color)
    create_document(db, COLL_CATEGORY, category)
    return db[COLL_CATEGORY].find_one({"slug": slug})


@router.get("")
def list_categories(db: Database = Depends(get_db)):
    categories = db[COLL_CATEGORY].find({"is_active": True}).sort([("name", ASCENDING)])
    return {"status": "success", "data": {"categories": serialize(list(categories))}}


@router.get("/{slug}")
def get_category(slug: str, db: Database = Depends(get_db)):
    category = db[COLL_CATEGORY].find_one({"slug": slug, "is_active": True})
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"status": "success", "data": {"category": serialize(category)}}


@router.post("", status_code=201)
def add_category(payload: CategoryRequest, admin: dict = Depends(require_admin), db: Database = Depends(get_db)):
    category = create_category(db, payload)
    return {
        "status": "success",
        "message": "Category created successfully",
        "data": {"category": serialize(category)},
    }


@router.put("/{slug}")
def update_category(
    slug: str,
    payload: CategoryUpdateRequest,
    admin: dict = Depends(require_admin),
    db: Database = Depends(get_db),
):
    category = db[COLL_CATEGORY].find_one({"slug": slug})
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    updates = payload.model_dump(exclude_none=True)
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        updates["slug"] = category_slug(updates["name"])
        clash = db[COLL_CATEGORY].find_one(
            {"_id": {"$ne": category["_id"]}, "$or": [{"slug": updates["slug"]}, {"name": updates["name"]}]}
        )
        if clash:
            raise HTTPException(status_code=400, detail="Category already exists")
    updates["updated_at"] = utcnow()
    db[COLL_CATEGORY].update_one({"_id": category["_id"]}, {"$set": updates})

    category = db[COLL_CATEGORY].find_one({"_id": category["_id"]})
    return {
        "status": "success",
        "message": "Category updated successfully",
        "data": {"category": serialize(category)},
    }


@router.delete("/{slug}")
def delete_category(slug: str, admin: dict = Depends(require_admin), db: Database = Depends(get_db)):
    result = db[COLL_CATEGORY].update_one({"slug": slug}, {"$set": {"is_active": False, "updated_at": utcnow()}})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"status": "success", "message": "Category deactivated successfully"}
