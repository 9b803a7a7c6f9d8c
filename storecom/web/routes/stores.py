"""
Store CRUD and bulk spreadsheet import.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from ...domain.pagination import pagination
from ...domain.permissions import can_access_brand, has_permission
from ...domain.slugs import slugify
from ...infrastructure.importer import SUPPORTED_EXTENSIONS, SheetImportError
from ...infrastructure.persistence import StoreStatus, enum_values, merge_documents
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, get_db, get_session, ok, require_session, scoped_brand_id
from ..schemas import StoreRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stores", tags=["stores"])


def _ensure_can_edit(session: SessionData, brand_id: Optional[int], permission: str = "edit_store"):
    if not has_permission(session.role, permission) or \
            not can_access_brand(session.role, session.brand_id, brand_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


def _validate_status(status: Optional[str]):
    if status and status not in enum_values(StoreStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")


@router.get("")
async def list_stores(request: Request, page: int = 1, limit: int = 10, search: str = "",
                      status: str = "", brand_id: Optional[int] = None,
                      session: Optional[SessionData] = Depends(get_session)):
    page, limit = max(page, 1), max(limit, 1)
    stores, total = get_db(request).list_stores(
        search=search, status=status, brand_id=scoped_brand_id(session, brand_id),
        page=page, limit=limit,
    )
    return ok([s.to_dict() for s in stores], pagination=pagination(page, limit, total))


@router.post("", status_code=201)
async def create_store(body: StoreRequest, request: Request,
                       session: SessionData = Depends(require_session)):
    data = body.model_dump(exclude_none=True)
    address = data.get("address") or {}
    if not data.get("brand_id"):
        raise HTTPException(status_code=400, detail="Brand is required")
    if not data.get("name"):
        raise HTTPException(status_code=400, detail="Store name is required")
    if not data.get("store_code"):
        raise HTTPException(status_code=400, detail="Store code is required")
    if not data.get("email"):
        raise HTTPException(status_code=400, detail="Store email is required")
    if not address.get("line1") or not address.get("city"):
        raise HTTPException(status_code=400, detail="Store address line1 and city are required")
    _validate_status(data.get("status"))
    _ensure_can_edit(session, data["brand_id"], "create_store")

    db = get_db(request)
    if db.get_brand(data["brand_id"]) is None:
        raise HTTPException(status_code=404, detail="Brand not found")
    if db.store_code_exists(data["store_code"]):
        raise HTTPException(status_code=400, detail="Store code already exists")

    slug = slugify(data["name"]) or "store"
    if db.store_slug_exists(slug):
        slug = f"{slug}-{slugify(data['store_code'])}"
    data["slug"] = slug

    store_id = db.create_store(data)
    if store_id is None:
        raise HTTPException(status_code=400, detail="Store code, slug or GMB location already exists")
    logger.info(f"{session.email} created store {data['store_code']}")
    return ok(db.get_store(store_id).to_dict(), message="Store created successfully")


@router.post("/import")
async def import_stores(request: Request, brand_id: int = Form(...), file: UploadFile = File(...),
                        session: SessionData = Depends(require_session)):
    """Bulk import stores for a brand from .xlsx/.xls/.csv."""
    _ensure_can_edit(session, brand_id, "create_store")
    if get_db(request).get_brand(brand_id) is None:
        raise HTTPException(status_code=404, detail="Brand not found")

    if not file.filename:
        raise HTTPException(status_code=400, detail="No file selected")
    if Path(file.filename).suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Invalid file type. Use .xlsx, .xls, or .csv")

    content = await file.read()
    try:
        result = request.app.state.store_importer.import_file(brand_id, content, file.filename)
    except SheetImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    message = f"Imported {result['added']} stores"
    if result["skipped"]:
        message += f" ({result['skipped']} existing store codes skipped)"
    return ok(result, message=message)


@router.get("/{store_id}")
async def get_store(store_id: int, request: Request,
                    session: SessionData = Depends(require_session)):
    store = get_db(request).get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    ensure_brand_access(session, store.brand_id)
    return ok(store.to_dict())


@router.put("/{store_id}")
async def update_store(store_id: int, body: StoreRequest, request: Request,
                       session: SessionData = Depends(require_session)):
    db = get_db(request)
    store = db.get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    _ensure_can_edit(session, store.brand_id)

    updates = body.model_dump(exclude_none=True)
    _validate_status(updates.get("status"))
    if "brand_id" in updates and updates["brand_id"] != store.brand_id:
        _ensure_can_edit(session, updates["brand_id"])
        if db.get_brand(updates["brand_id"]) is None:
            raise HTTPException(status_code=404, detail="Brand not found")
    if "store_code" in updates and db.store_code_exists(updates["store_code"], exclude_id=store_id):
        raise HTTPException(status_code=400, detail="Store code already exists")
    if updates.get("gmb_location_id"):
        holder = db.get_store_by_location_id(updates["gmb_location_id"])
        if holder and holder.id != store_id:
            raise HTTPException(status_code=400, detail="GMB location is already linked to another store")
    for document in ("address", "hours_of_operation", "amenities", "microsite", "social_media", "seo"):
        if document in updates:
            updates[document] = merge_documents(getattr(store, document), updates[document])

    db.update_store(store_id, **updates)
    return ok(db.get_store(store_id).to_dict(), message="Store updated successfully")


@router.delete("/{store_id}")
async def delete_store(store_id: int, request: Request,
                       session: SessionData = Depends(require_session)):
    db = get_db(request)
    store = db.get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    _ensure_can_edit(session, store.brand_id, "delete_store")

    db.delete_store(store_id)
    logger.info(f"{session.email} deleted store {store_id}")
    return ok(message="Store deleted successfully")
