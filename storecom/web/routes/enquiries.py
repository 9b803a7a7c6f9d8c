"""
Customer enquiries: public submission from microsites, scoped admin listing
and status/response updates.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ...domain.pagination import pagination
from ...infrastructure.persistence import EnquiryStatus, EnquiryType, enum_values, now_iso
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, get_db, ok, require_session, scoped_brand_id
from ..schemas import EnquiryRequest, EnquiryUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/enquiries", tags=["enquiries"])

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@router.post("", status_code=201)
async def submit_enquiry(body: EnquiryRequest, request: Request):
    if not body.name.strip() or not body.email.strip() or not body.message.strip():
        raise HTTPException(status_code=400, detail="Name, email and message are required")
    if not EMAIL_PATTERN.match(body.email.strip()):
        raise HTTPException(status_code=400, detail="Invalid email address")
    if body.enquiry_type not in enum_values(EnquiryType):
        raise HTTPException(status_code=400, detail=f"Invalid enquiry type: {body.enquiry_type}")

    db = get_db(request)
    data = body.model_dump()
    data["email"] = data["email"].strip().lower()

    if body.store_id is not None:
        store = db.get_store(body.store_id)
        if store is None:
            raise HTTPException(status_code=404, detail="Store not found")
        data["store_name"] = store.name
        if data["brand_id"] is not None and data["brand_id"] != store.brand_id:
            raise HTTPException(status_code=400, detail="Store does not belong to this brand")
        data["brand_id"] = store.brand_id
    if data["brand_id"] is not None:
        brand = db.get_brand(data["brand_id"])
        if brand is None:
            raise HTTPException(status_code=404, detail="Brand not found")
        data["brand_name"] = brand.name

    enquiry_id = db.create_enquiry(data)
    logger.info(f"New {data['enquiry_type']} enquiry {enquiry_id} for brand {data['brand_id']}")
    return ok({"id": enquiry_id}, message="Enquiry submitted successfully")


@router.get("")
async def list_enquiries(request: Request, page: int = 1, limit: int = 20, status: str = "",
                         enquiry_type: str = "", store_id: Optional[int] = None,
                         brand_id: Optional[int] = None, search: str = "",
                         session: SessionData = Depends(require_session)):
    page, limit = max(page, 1), max(limit, 1)
    enquiries, total = get_db(request).list_enquiries(
        status=status, enquiry_type=enquiry_type, store_id=store_id,
        brand_id=scoped_brand_id(session, brand_id), search=search, page=page, limit=limit,
    )
    return ok([e.to_dict() for e in enquiries], pagination=pagination(page, limit, total))


@router.get("/{enquiry_id}")
async def get_enquiry(enquiry_id: int, request: Request,
                      session: SessionData = Depends(require_session)):
    enquiry = get_db(request).get_enquiry(enquiry_id)
    if enquiry is None:
        raise HTTPException(status_code=404, detail="Enquiry not found")
    ensure_brand_access(session, enquiry.brand_id)
    return ok(enquiry.to_dict())


@router.patch("/{enquiry_id}")
async def update_enquiry(enquiry_id: int, body: EnquiryUpdate, request: Request,
                         session: SessionData = Depends(require_session)):
    if body.status and body.status not in enum_values(EnquiryStatus):
        raise HTTPException(status_code=400, detail=f"Invalid status: {body.status}")

    db = get_db(request)
    enquiry = db.get_enquiry(enquiry_id)
    if enquiry is None:
        raise HTTPException(status_code=404, detail="Enquiry not found")
    ensure_brand_access(session, enquiry.brand_id)

    updates = {}
    if body.status:
        updates["status"] = body.status
    if body.response:
        updates["response"] = body.response
        updates["responded_at"] = now_iso()
        updates["responded_by"] = session.email
    if updates:
        db.update_enquiry(enquiry_id, **updates)
    return ok(db.get_enquiry(enquiry_id).to_dict(), message="Enquiry updated successfully")
