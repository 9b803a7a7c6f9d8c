"""
GMB verification routes: live verified-flag checks (single and bulk), the
Verifications API flow (options, start, complete, list), Voice of Merchant
state and per-brand verification stats.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...infrastructure.gmb import parse_verification_name
from ...infrastructure.persistence import Store
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, get_db, live_gmb_client, ok, require_session, scoped_brand_id
from ..schemas import BulkVerifyRequest, CompleteVerificationRequest, StartVerificationRequest, VerifyStoreRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gmb", tags=["verification"])


def _linked_store(request: Request, session: SessionData, store_id: Optional[int]) -> Store:
    if store_id is None:
        raise HTTPException(status_code=400, detail="store_id is required")
    store = get_db(request).get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    ensure_brand_access(session, store.brand_id)
    if not store.gmb_location_id:
        raise HTTPException(status_code=400, detail="Store is not linked to a GMB location")
    return store


@router.post("/verify-store")
def verify_store(body: VerifyStoreRequest, request: Request, response: Response,
                 session: SessionData = Depends(require_session)):
    store = _linked_store(request, session, body.store_id)
    client = live_gmb_client(request, response)
    result = request.app.state.verification.verify_store(store, client)
    return ok(result, message=result["message"])


@router.post("/verify-bulk")
def verify_bulk(body: BulkVerifyRequest, request: Request, response: Response,
                session: SessionData = Depends(require_session)):
    db = get_db(request)
    if body.store_ids:
        stores = []
        for store_id in body.store_ids:
            store = db.get_store(store_id)
            if store is None:
                raise HTTPException(status_code=404, detail=f"Store {store_id} not found")
            ensure_brand_access(session, store.brand_id)
            stores.append(store)
    elif body.brand_id is not None:
        ensure_brand_access(session, body.brand_id)
        stores = db.list_brand_stores(body.brand_id)
    else:
        raise HTTPException(status_code=400, detail="store_ids or brand_id is required")

    client = live_gmb_client(request, response)
    result = request.app.state.verification.verify_stores(stores, client)
    return ok(result, message=f"Checked {result['summary']['checked']} of {len(stores)} stores")


@router.get("/verification-options")
def verification_options(request: Request, response: Response, store_id: Optional[int] = None,
                         language_code: str = "en-US",
                         session: SessionData = Depends(require_session)):
    store = _linked_store(request, session, store_id)
    client = live_gmb_client(request, response)
    return ok(client.fetch_verification_options(store.gmb_location_id, language_code))


@router.post("/start-verification")
def start_verification(body: StartVerificationRequest, request: Request, response: Response,
                       session: SessionData = Depends(require_session)):
    options = body.options or {}
    if not options.get("method"):
        raise HTTPException(status_code=400, detail="options.method is required")
    store = _linked_store(request, session, body.store_id)

    client = live_gmb_client(request, response)
    verification = client.start_verification(store.gmb_location_id, options)
    request.app.state.verification.record_started(store, verification, options)
    logger.info(f"{session.email} started {options['method']} verification for store {store.id}")
    return ok(verification, message="Verification started")


@router.post("/complete-verification")
def complete_verification(body: CompleteVerificationRequest, request: Request, response: Response,
                          session: SessionData = Depends(require_session)):
    if not body.pin.strip():
        raise HTTPException(status_code=400, detail="pin is required")
    try:
        parse_verification_name(body.verification_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store = _linked_store(request, session, body.store_id)

    client = live_gmb_client(request, response)
    verification = client.complete_verification(body.verification_name, body.pin.strip())
    success = verification.get("state") == "COMPLETED"
    tracked = request.app.state.verification.complete_attempt(
        store, body.verification_name, success, {"state": verification.get("state")}
    )
    message = "Verification completed" if success else "Verification not completed"
    return ok(verification, tracked=tracked, message=message)


@router.get("/verifications")
def list_verifications(request: Request, response: Response, store_id: Optional[int] = None,
                       session: SessionData = Depends(require_session)):
    store = _linked_store(request, session, store_id)
    client = live_gmb_client(request, response)
    return ok({
        "verifications": client.list_verifications(store.gmb_location_id),
        "history": request.app.state.verification.history(store),
    })


@router.get("/voice-of-merchant-state")
def voice_of_merchant_state(request: Request, response: Response, store_id: Optional[int] = None,
                            session: SessionData = Depends(require_session)):
    store = _linked_store(request, session, store_id)
    client = live_gmb_client(request, response)
    state = client.get_voice_of_merchant_state(store.gmb_location_id)
    return ok(request.app.state.verification.update_voice_of_merchant(store, state))


@router.get("/verification-stats")
async def verification_stats(request: Request, brand_id: Optional[int] = None,
                             session: SessionData = Depends(require_session)):
    scoped = scoped_brand_id(session, brand_id)
    service = request.app.state.verification
    return ok(service.get_stats(scoped), pending=service.pending_stores(scoped))
