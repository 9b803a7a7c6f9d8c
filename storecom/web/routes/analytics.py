"""
Analytics routes: stored sentiment rollups and per-store rating stats.
"""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request

from ...domain.review_stats import rating_stats
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, get_db, ok, require_session, scoped_brand_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _entity(request: Request, session: SessionData, store_id: Optional[int],
            brand_id: Optional[int], entity_type: Optional[str]) -> Tuple[int, str]:
    """Resolve (entity id, entity type) and check brand access."""
    db = get_db(request)
    if store_id is not None and entity_type != "brand":
        store = db.get_store(store_id)
        if store is None:
            raise HTTPException(status_code=404, detail="Store not found")
        ensure_brand_access(session, store.brand_id)
        return store_id, "store"
    if brand_id is not None:
        if db.get_brand(brand_id) is None:
            raise HTTPException(status_code=404, detail="Brand not found")
        ensure_brand_access(session, brand_id)
        return brand_id, "brand"
    raise HTTPException(status_code=400, detail="store_id or brand_id is required")


@router.get("/sentiment")
def sentiment(request: Request, store_id: Optional[int] = None, brand_id: Optional[int] = None,
              type: Optional[str] = None, force: bool = False, days: int = 90,
              session: SessionData = Depends(require_session)):
    entity_id, entity_type = _entity(request, session, store_id, brand_id, type)
    workflow = request.app.state.sentiment_workflow
    days = max(days, 1)

    analytics = workflow.get_analytics(entity_id, entity_type)
    analyzed = False
    if force or analytics is None or workflow.needs_analysis(entity_id, entity_type, days):
        analytics = workflow.analyze_and_save(entity_id, entity_type, days)
        analyzed = True

    return ok(analytics.to_dict(), analyzed=analyzed)


@router.get("/sentiment/status")
async def sentiment_status(request: Request, store_id: Optional[int] = None,
                           brand_id: Optional[int] = None, type: Optional[str] = None,
                           days: int = 90, session: SessionData = Depends(require_session)):
    entity_id, entity_type = _entity(request, session, store_id, brand_id, type)
    status = request.app.state.sentiment_workflow.get_analysis_status(
        entity_id, entity_type, max(days, 1)
    )
    return ok(status)


@router.get("/rating-reviews")
async def rating_reviews(request: Request, brand_id: Optional[int] = None,
                         session: SessionData = Depends(require_session)):
    """Rating stats per store for every brand the caller can see."""
    db = get_db(request)
    scoped = scoped_brand_id(session, brand_id)
    brands = [db.get_brand(scoped)] if scoped is not None else db.list_all_brands()

    data = []
    for brand in brands:
        if brand is None:
            continue
        for store in db.list_brand_stores(brand.id):
            stats = rating_stats(db.review_ratings(store_id=store.id, status="active"))
            data.append({
                "store_id": store.id,
                "store_name": store.name,
                "brand_id": brand.id,
                "brand_name": brand.name,
                **stats,
            })
    return ok(data)
