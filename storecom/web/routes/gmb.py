"""
GMB data routes: sync, live account/location/review/post proxies, posting,
replying to reviews and the category catalog.

All routes need a dashboard session. Live routes also need the gmb-tokens
cookie; expired tokens are refreshed and the cookie rewritten.
GmbApiError / OAuthError / SyncError are rendered by the app's handlers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...infrastructure.gmb import parse_location_name, parse_post_name
from ...infrastructure.security import SessionData
from ..deps import ensure_brand_access, fresh_gmb_tokens, live_gmb_client, ok, require_gmb_tokens, require_session
from ..schemas import GmbPostRequest, PullSyncRequest, ReplyRequest, SyncAllRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gmb", tags=["gmb"])


def _validate_location(location_id: str):
    try:
        parse_location_name(location_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ── Sync ───────────────────────────────────────────────────────────

@router.post("/sync-all")
def sync_all(body: SyncAllRequest, request: Request,
             session: SessionData = Depends(require_session)):
    gmb_data = body.gmbData
    if not gmb_data:
        raise HTTPException(status_code=400, detail="GMB data is required")
    if not gmb_data.get("account") or gmb_data.get("locations") is None:
        raise HTTPException(status_code=400, detail="Account and locations data are required")

    result = request.app.state.gmb_sync.sync_all_data(gmb_data)
    return ok(result, message="GMB data synced successfully")


@router.get("/sync-all")
async def sync_stats(request: Request, session: SessionData = Depends(require_session)):
    return ok(request.app.state.gmb_sync.get_sync_stats())


@router.post("/sync")
def pull_sync(request: Request, response: Response,
              body: Optional[PullSyncRequest] = None,
              session: SessionData = Depends(require_session)):
    tokens = fresh_gmb_tokens(request, response)
    account_id = body.account_id if body else None

    outcome = request.app.state.gmb_sync.sync_from_google(tokens, account_id=account_id)
    return ok(outcome["results"], message="GMB sync completed")


# ── Live data ──────────────────────────────────────────────────────

@router.get("/accounts")
def accounts(request: Request, response: Response,
             session: SessionData = Depends(require_session)):
    client = live_gmb_client(request, response)
    live = client.get_accounts()
    stored = [account.to_dict() for account in request.app.state.db.list_gmb_accounts()]
    return ok({"accounts": live, "stored_accounts": stored})


@router.get("/locations")
def locations(request: Request, response: Response, account_id: str = "",
              session: SessionData = Depends(require_session)):
    if not account_id:
        raise HTTPException(status_code=400, detail="account_id is required")
    if not account_id.startswith("accounts/"):
        account_id = f"accounts/{account_id}"
    client = live_gmb_client(request, response)
    return ok(client.get_locations(account_id))


@router.get("/reviews")
def reviews(request: Request, response: Response, location_id: str = "",
            session: SessionData = Depends(require_session)):
    if not location_id:
        raise HTTPException(status_code=400, detail="location_id is required")
    _validate_location(location_id)
    client = live_gmb_client(request, response)
    return ok(client.get_reviews(location_id))


@router.get("/posts")
def posts(request: Request, response: Response, location_id: str = "",
          session: SessionData = Depends(require_session)):
    if not location_id:
        raise HTTPException(status_code=400, detail="location_id is required")
    _validate_location(location_id)
    client = live_gmb_client(request, response)
    return ok(client.get_posts(location_id))


@router.post("/posts", status_code=201)
def create_post(body: GmbPostRequest, request: Request, response: Response,
                session: SessionData = Depends(require_session)):
    post_data = body.post_data or {}
    if not body.location_name:
        raise HTTPException(status_code=400, detail="location_name is required")
    missing = [f for f in ("topic_type", "language_code", "summary") if not post_data.get(f)]
    if missing:
        raise HTTPException(status_code=400, detail=f"post_data requires: {', '.join(missing)}")
    _validate_location(body.location_name)

    client = live_gmb_client(request, response)
    created = client.create_post(body.location_name, post_data)
    return ok(created, message="Post created")


@router.patch("/posts")
def update_post(body: GmbPostRequest, request: Request, response: Response, post_name: str = "",
                session: SessionData = Depends(require_session)):
    try:
        parse_post_name(post_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not body.post_data:
        raise HTTPException(status_code=400, detail="post_data is required")

    client = live_gmb_client(request, response)
    updated = client.update_post(post_name, body.post_data)

    db = request.app.state.db
    stored = db.get_post_by_gmb_id(post_name)
    if stored is not None:
        db.update_post(stored.id, **{
            key: updated[key]
            for key in ("summary", "call_to_action", "media", "topic_type", "state", "event")
            if updated.get(key) is not None
        })
    return ok(updated, message="Post updated")


@router.delete("/posts")
def delete_post(request: Request, response: Response, post_name: str = "",
                session: SessionData = Depends(require_session)):
    try:
        parse_post_name(post_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    client = live_gmb_client(request, response)
    client.delete_post(post_name)
    request.app.state.db.delete_post_by_gmb_id(post_name)
    return ok(message="Post deleted")


# ── Review replies ─────────────────────────────────────────────────

@router.post("/reviews/{review_id}/reply")
def reply_to_review(review_id: int, body: ReplyRequest, request: Request, response: Response,
                    session: SessionData = Depends(require_session)):
    comment = (body.comment or "").strip()
    if not comment:
        raise HTTPException(status_code=400, detail="Reply comment is required")
    require_gmb_tokens(request)

    db = request.app.state.db
    review = db.get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Review not found")
    ensure_brand_access(session, review.brand_id)

    store = db.get_store(review.store_id)
    if store is None or not store.gmb_location_id:
        raise HTTPException(status_code=400, detail="Store GMB location ID not found")

    review_part = review.gmb_review_id.split("/")[-1]
    review_name = f"{store.gmb_location_id}/reviews/{review_part}"

    client = live_gmb_client(request, response)
    client.reply_to_review(review_name, comment)

    db.set_review_response(review.id, comment, responded_by="GMB")
    logger.info(f"{session.email} replied to review {review.id} on GMB")
    return ok(db.get_review(review.id).to_dict(), message="Reply posted")


# ── Category catalog ───────────────────────────────────────────────

@router.post("/categories/sync")
def sync_categories(request: Request, response: Response, region_code: str = "IN",
                    language_code: str = "en", session: SessionData = Depends(require_session)):
    if session.role != "super_admin":
        raise HTTPException(status_code=403, detail="Access denied")
    client = live_gmb_client(request, response)
    result = request.app.state.performance.sync_categories(client, region_code, language_code)
    logger.info(f"Category sync {region_code}/{language_code}: "
                f"{result['created']} created, {result['updated']} updated")
    return ok(result, message="Categories synced")


@router.get("/categories/sync")
async def category_sync_status(request: Request, region_code: str = "IN", language_code: str = "en",
                               session: SessionData = Depends(require_session)):
    db = request.app.state.db
    last_synced = db.last_category_sync(region_code, language_code)
    return ok({
        "total": len(db.list_categories(region_code, language_code)),
        "last_synced_at": last_synced,
        "needs_sync": last_synced is None,
        "region_code": region_code,
        "language_code": language_code,
    })


@router.get("/categories")
async def categories(request: Request, region_code: str = "IN", language_code: str = "en",
                     search: str = "", session: SessionData = Depends(require_session)):
    found = request.app.state.db.list_categories(region_code, language_code, search.strip())
    options = [{"value": c.gmb_category_id, "label": c.display_name} for c in found]
    return ok(options, total=len(options))
