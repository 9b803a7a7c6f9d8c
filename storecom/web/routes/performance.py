"""
Performance routes: pull Business Profile insights for a store or brand, and
serve the stored rollups (store report, store-wise table, search keywords).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, get_db, live_gmb_client, ok, require_session
from ..schemas import PerformanceSyncRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/performance", tags=["performance"])

MAX_DAYS = 540


def _store(request: Request, session: SessionData, store_id: int):
    store = get_db(request).get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    ensure_brand_access(session, store.brand_id)
    return store


def _brand(request: Request, session: SessionData, brand_id: int):
    if get_db(request).get_brand(brand_id) is None:
        raise HTTPException(status_code=404, detail="Brand not found")
    ensure_brand_access(session, brand_id)


@router.post("/sync")
def sync(body: PerformanceSyncRequest, request: Request, response: Response,
         session: SessionData = Depends(require_session)):
    if not 1 <= body.days <= MAX_DAYS:
        raise HTTPException(status_code=400, detail=f"days must be between 1 and {MAX_DAYS}")
    service = request.app.state.performance

    if body.store_id is not None:
        store = _store(request, session, body.store_id)
        if not store.gmb_location_id:
            raise HTTPException(status_code=400, detail="Store is not linked to a GMB location")
        client = live_gmb_client(request, response)
        record = service.sync_store(store, client, body.days)
        keywords = service.sync_keywords(store, client, body.months)
        result = {"stores": 1, "keywords": keywords, "skipped": 0, "errors": [],
                  "performance": record.metrics}
    elif body.brand_id is not None:
        _brand(request, session, body.brand_id)
        client = live_gmb_client(request, response)
        result = service.sync_brand(body.brand_id, client, body.days, body.months)
    else:
        raise HTTPException(status_code=400, detail="store_id or brand_id is required")

    logger.info(f"{session.email} synced performance for {result['stores']} stores")
    return ok(result, message="Performance synced")


@router.get("")
def store_performance(request: Request, store_id: Optional[int] = None, days: Optional[int] = None,
                      session: SessionData = Depends(require_session)):
    if store_id is None:
        raise HTTPException(status_code=400, detail="store_id is required")
    _store(request, session, store_id)

    report = request.app.state.performance.store_performance(store_id, days)
    if report is None:
        raise HTTPException(status_code=404, detail="No performance data for this store")
    keywords = [k.to_dict() for k in get_db(request).list_search_keywords(store_id)]
    return ok(report, keywords=keywords)


@router.get("/store-wise")
def store_wise(request: Request, brand_id: Optional[int] = None, days: Optional[int] = None,
               session: SessionData = Depends(require_session)):
    if brand_id is None:
        brand_id = session.brand_id
    if brand_id is None:
        raise HTTPException(status_code=400, detail="brand_id is required")
    _brand(request, session, brand_id)
    return ok(request.app.state.performance.store_wise(brand_id, days))


@router.get("/keywords")
def keywords(request: Request, store_id: Optional[int] = None, brand_id: Optional[int] = None,
             limit: int = 20, session: SessionData = Depends(require_session)):
    limit = min(max(limit, 1), 100)
    service = request.app.state.performance
    if store_id is not None:
        _store(request, session, store_id)
        return ok(service.top_keywords(store_id=store_id, limit=limit))
    if brand_id is None:
        brand_id = session.brand_id
    if brand_id is None:
        raise HTTPException(status_code=400, detail="store_id or brand_id is required")
    _brand(request, session, brand_id)
    return ok(service.top_keywords(brand_id=brand_id, limit=limit))
