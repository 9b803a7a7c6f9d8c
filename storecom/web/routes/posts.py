"""
Locally stored GMB posts.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ...infrastructure.persistence import CallToActionType, PostState, TopicType, enum_values, to_iso
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, ensure_store_in_brand, get_db, ok, require_session, scoped_brand_id
from ..schemas import PostRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])

REQUIRED_FIELDS = ("gmb_post_id", "store_id", "brand_id", "account_id", "gmb_create_time")


@router.get("")
async def list_posts(request: Request, limit: int = 50, skip: int = 0,
                     store_id: Optional[int] = None, brand_id: Optional[int] = None,
                     account_id: str = "", topic_type: str = "", state: str = "",
                     status: str = "active", session: SessionData = Depends(require_session)):
    posts, total = get_db(request).list_posts(
        limit=max(limit, 1), skip=max(skip, 0), store_id=store_id,
        brand_id=scoped_brand_id(session, brand_id), account_id=account_id,
        topic_type=topic_type, state=state, status=status,
    )
    return ok([p.to_dict() for p in posts], pagination={"total": total, "limit": limit, "skip": skip})


@router.post("", status_code=201)
async def create_post(body: PostRequest, request: Request,
                      session: SessionData = Depends(require_session)):
    data = body.model_dump(exclude_none=True)
    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")

    if data.get("topic_type") and data["topic_type"] not in enum_values(TopicType):
        raise HTTPException(status_code=400, detail=f"Invalid topic_type: {data['topic_type']}")
    if data.get("state") and data["state"] not in enum_values(PostState):
        raise HTTPException(status_code=400, detail=f"Invalid state: {data['state']}")
    action = (data.get("call_to_action") or {}).get("action_type")
    if action and action not in enum_values(CallToActionType):
        raise HTTPException(status_code=400, detail=f"Invalid call to action: {action}")
    for key in ("gmb_create_time", "gmb_update_time"):
        if data.get(key):
            data[key] = to_iso(data[key])
            if data[key] is None:
                raise HTTPException(status_code=400, detail=f"Invalid {key}")
    ensure_brand_access(session, data["brand_id"])

    db = get_db(request)
    ensure_store_in_brand(db, data["store_id"], data["brand_id"])
    if db.get_post_by_gmb_id(data["gmb_post_id"]):
        raise HTTPException(status_code=409, detail="Post already exists")
    data.setdefault("source", "manual")

    post_id = db.create_post(data)
    if post_id is None:
        raise HTTPException(status_code=409, detail="Post already exists")
    return ok(db.get_post(post_id).to_dict(), message="Post created successfully")
