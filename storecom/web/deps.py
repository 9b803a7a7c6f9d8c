"""
Request dependencies shared by the routers: database, settings, the
dashboard session and the GMB token cookie.
"""

import json
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response

from ..domain.permissions import can_access_brand
from ..infrastructure.config import Settings
from ..infrastructure.gmb import GmbApiClient
from ..infrastructure.persistence import Database
from ..infrastructure.security import SessionData, verify_session_token

logger = logging.getLogger(__name__)


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def ok(data=None, **extra) -> dict:
    """Success envelope: {"success": true, "data": ...} plus pagination/stats/message."""
    body = {"success": True, "data": data}
    body.update(extra)
    return body


# ── Dashboard session ──────────────────────────────────────────────

def get_session(request: Request) -> Optional[SessionData]:
    token = request.cookies.get(request.app.state.settings.auth.session_cookie)
    if not token:
        return None
    return verify_session_token(token)


def require_session(session: Optional[SessionData] = Depends(get_session)) -> SessionData:
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session


def ensure_brand_access(session: SessionData, brand_id: Optional[int]):
    if not can_access_brand(session.role, session.brand_id, brand_id):
        raise HTTPException(status_code=403, detail="Access denied")


def ensure_store_in_brand(db: Database, store_id: int, brand_id: int):
    """404 for an unknown store, 400 when the store is owned by another brand."""
    store = db.get_store(store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")
    if store.brand_id != brand_id:
        raise HTTPException(status_code=400, detail="Store does not belong to this brand")
    return store


def scoped_brand_id(session: Optional[SessionData], requested: Optional[int] = None) -> Optional[int]:
    """
    Brand filter for list endpoints.

    Super admins may filter by any brand (or none); everyone else is pinned to
    their own brand. Returns -1 for anonymous callers so nothing matches.
    """
    if session is None:
        return -1
    if session.role == "super_admin":
        return requested
    return session.brand_id if session.brand_id is not None else -1


def set_session_cookie(response: Response, token: str, settings: Settings):
    response.set_cookie(
        settings.auth.session_cookie,
        token,
        max_age=settings.auth.session_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


# ── GMB token cookie ───────────────────────────────────────────────

def read_gmb_tokens(request: Request) -> Optional[dict]:
    """Tokens from the gmb-tokens cookie, or None if absent or unparsable."""
    raw = request.cookies.get(request.app.state.settings.google.token_cookie)
    if not raw:
        return None
    try:
        tokens = json.loads(raw)
    except ValueError:
        logger.warning("Unparsable GMB token cookie")
        return None
    return tokens if isinstance(tokens, dict) else None


def require_gmb_tokens(request: Request) -> dict:
    tokens = read_gmb_tokens(request)
    if not tokens or not tokens.get("access_token"):
        raise HTTPException(status_code=401, detail="GMB authentication required")
    return tokens


def set_gmb_cookie(response: Response, tokens: dict, settings: Settings):
    response.set_cookie(
        settings.google.token_cookie,
        json.dumps(tokens),
        max_age=settings.google.token_cookie_days * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )


def clear_gmb_cookie(response: Response, settings: Settings):
    response.delete_cookie(settings.google.token_cookie, path="/")


def fresh_gmb_tokens(request: Request, response: Response) -> dict:
    """
    Cookie tokens, refreshed when expired. A refresh rewrites the cookie on
    this response, and is kept on request.state so error responses carry it too.
    """
    tokens = require_gmb_tokens(request)
    tokens, refreshed = request.app.state.oauth.get_valid_tokens(tokens)
    if refreshed:
        set_gmb_cookie(response, tokens, get_app_settings(request))
        request.state.refreshed_gmb_tokens = tokens
    return tokens


def live_gmb_client(request: Request, response: Response) -> GmbApiClient:
    tokens = fresh_gmb_tokens(request, response)
    return request.app.state.gmb_client_factory(tokens.get("access_token"))
