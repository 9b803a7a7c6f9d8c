"""
Brand CRUD.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ...domain.pagination import pagination
from ...domain.permissions import can_access_brand
from ...infrastructure.persistence import BrandStatus, enum_values, merge_documents
from ...infrastructure.persistence.models import default_branding, default_brand_settings
from ...infrastructure.security import SessionData, hash_password
from ..deps import ensure_brand_access, get_db, get_session, ok, require_session, scoped_brand_id
from ..schemas import BrandRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/brands", tags=["brands"])

REQUIRED_FIELDS = (
    ("name", "Brand name is required"),
    ("slug", "Brand slug is required"),
    ("email", "Brand email is required"),
    ("address", "Brand address is required"),
)


def _hash_users(users: dict, current: Optional[dict] = None) -> dict:
    """Hash new passwords; an empty password keeps the stored hash."""
    current = current or {}
    hashed = {}
    for role, account in users.items():
        if not account:
            continue
        account = dict(account)
        account["email"] = (account.get("email") or "").strip().lower()
        if account.get("password"):
            account["password"] = hash_password(account["password"])
        else:
            account["password"] = (current.get(role) or {}).get("password", "")
        hashed[role] = account
    return hashed


@router.get("")
async def list_brands(request: Request, page: int = 1, limit: int = 10, search: str = "",
                      status: str = "", session: Optional[SessionData] = Depends(get_session)):
    page, limit = max(page, 1), max(limit, 1)
    brand_id = scoped_brand_id(session)
    brands, total = get_db(request).list_brands(
        search=search, status=status, brand_id=brand_id, page=page, limit=limit
    )
    return ok([b.to_dict() for b in brands], pagination=pagination(page, limit, total))


@router.post("", status_code=201)
async def create_brand(body: BrandRequest, request: Request,
                       session: SessionData = Depends(require_session)):
    if session.role != "super_admin":
        raise HTTPException(status_code=403, detail="Only super admins can create brands")

    data = body.model_dump(exclude_none=True)
    for field, message in REQUIRED_FIELDS:
        if not data.get(field):
            raise HTTPException(status_code=400, detail=message)
    owner = (data.get("users") or {}).get("owner") or {}
    if not owner.get("email") or not owner.get("password"):
        raise HTTPException(status_code=400, detail="Owner email and password are required")
    if data.get("status") and data["status"] not in enum_values(BrandStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {data['status']}")

    db = get_db(request)
    data["slug"] = data["slug"].strip().lower()
    if db.brand_slug_exists(data["slug"]):
        raise HTTPException(status_code=400, detail="Brand slug already exists")
    if db.owner_email_exists(owner["email"]):
        raise HTTPException(status_code=400, detail="Owner email is already used by another brand")

    data["users"] = _hash_users(data["users"])
    data["branding"] = merge_documents(default_branding(), data.get("branding") or {})
    data["settings"] = merge_documents(default_brand_settings(), data.get("settings") or {})

    brand_id = db.create_brand(data)
    if brand_id is None:
        raise HTTPException(status_code=400, detail="Brand slug already exists")
    logger.info(f"{session.email} created brand {data['slug']}")
    return ok(db.get_brand(brand_id).to_dict(), message="Brand created successfully")


@router.get("/{brand_id}")
async def get_brand(brand_id: int, request: Request,
                    session: SessionData = Depends(require_session)):
    ensure_brand_access(session, brand_id)
    brand = get_db(request).get_brand(brand_id)
    if brand is None:
        raise HTTPException(status_code=404, detail="Brand not found")
    return ok(brand.to_dict())


@router.put("/{brand_id}")
async def update_brand(brand_id: int, body: BrandRequest, request: Request,
                       session: SessionData = Depends(require_session)):
    if not can_access_brand(session.role, session.brand_id, brand_id) or session.role == "manager":
        raise HTTPException(status_code=403, detail="Access denied")

    db = get_db(request)
    brand = db.get_brand(brand_id)
    if brand is None:
        raise HTTPException(status_code=404, detail="Brand not found")

    updates = body.model_dump(exclude_none=True)
    if "slug" in updates:
        updates["slug"] = updates["slug"].strip().lower()
        if not updates["slug"]:
            raise HTTPException(status_code=400, detail="Brand slug is required")
        if db.brand_slug_exists(updates["slug"], exclude_id=brand_id):
            raise HTTPException(status_code=400, detail="Brand slug already exists")
    if updates.get("status") and updates["status"] not in enum_values(BrandStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {updates['status']}")
    if "users" in updates:
        updates["users"] = merge_documents(brand.users, _hash_users(updates["users"], brand.users))
    for document in ("branding", "settings", "content", "address"):
        if document in updates:
            updates[document] = merge_documents(getattr(brand, document), updates[document])

    db.update_brand(brand_id, **updates)
    return ok(db.get_brand(brand_id).to_dict(), message="Brand updated successfully")


@router.delete("/{brand_id}")
async def delete_brand(brand_id: int, request: Request,
                       session: SessionData = Depends(require_session)):
    if session.role != "super_admin":
        raise HTTPException(status_code=403, detail="Only super admins can delete brands")
    if not get_db(request).delete_brand(brand_id):
        raise HTTPException(status_code=404, detail="Brand not found")
    logger.info(f"{session.email} deleted brand {brand_id}")
    return ok(message="Brand deleted successfully")
