"""
GMB OAuth routes: connect, callback, refresh, status, disconnect.

Tokens live in the httpOnly gmb-tokens cookie as JSON; nothing is stored
server-side except the account list seen during syncs.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from ...infrastructure.gmb import OAuthError, normalize_tokens
from ..deps import clear_gmb_cookie, get_app_settings, ok, read_gmb_tokens, set_gmb_cookie
from ..schemas import TokensRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth/gmb", tags=["gmb-auth"])

BUSINESS_SCOPE = "https://www.googleapis.com/auth/business.manage"


def _overview_redirect(request: Request, query: str) -> RedirectResponse:
    app_url = get_app_settings(request).google.app_url
    return RedirectResponse(url=f"{app_url}/dashboard/overview?{query}", status_code=302)


@router.get("/auth-url")
async def auth_url(request: Request, state: Optional[str] = None):
    oauth = request.app.state.oauth
    if not oauth.is_configured:
        raise HTTPException(status_code=500, detail="Google OAuth is not configured")
    return ok({"auth_url": oauth.generate_auth_url(state)})


@router.get("/callback")
def callback(request: Request, code: Optional[str] = None, error: Optional[str] = None):
    if error:
        logger.warning(f"GMB OAuth returned error: {error}")
        return _overview_redirect(request, f"error={quote(error)}")
    if not code:
        return _overview_redirect(request, "error=no_code")

    try:
        tokens = request.app.state.oauth.exchange_code(code)
    except OAuthError as e:
        logger.error(f"GMB token exchange failed: {e}")
        return _overview_redirect(request, "error=token_exchange_failed")

    response = _overview_redirect(request, "connected=true")
    set_gmb_cookie(response, tokens, get_app_settings(request))
    return response


@router.post("/refresh")
def refresh(request: Request):
    settings = get_app_settings(request)
    tokens = read_gmb_tokens(request)
    if not tokens:
        raise HTTPException(status_code=401, detail="No GMB tokens found")

    try:
        refreshed = request.app.state.oauth.refresh_access_token(tokens)
    except OAuthError as e:
        logger.warning(f"GMB token refresh failed: {e}")
        response = JSONResponse({"success": False, "error": "Token refresh failed"}, status_code=401)
        clear_gmb_cookie(response, settings)
        return response

    response = JSONResponse(ok({"expires_at": refreshed.get("expires_at")}, message="Token refreshed"))
    set_gmb_cookie(response, refreshed, settings)
    return response


@router.post("/disconnect")
def disconnect(request: Request, response: Response):
    settings = get_app_settings(request)
    tokens = read_gmb_tokens(request)
    if tokens:
        token = tokens.get("access_token") or tokens.get("refresh_token")
        if token:
            request.app.state.oauth.revoke_token(token)

    clear_gmb_cookie(response, settings)
    disconnected = request.app.state.db.disconnect_gmb_accounts()
    logger.info(f"GMB disconnected ({disconnected} stored accounts marked disconnected)")
    return ok(message="GMB account disconnected")


@router.get("/status")
def status(request: Request, response: Response):
    settings = get_app_settings(request)
    raw = request.cookies.get(settings.google.token_cookie)
    if not raw:
        return ok({"connected": False})

    tokens = read_gmb_tokens(request)
    if not tokens or not tokens.get("access_token"):
        clear_gmb_cookie(response, settings)
        return ok({"connected": False})

    try:
        info = request.app.state.oauth.get_token_info(tokens["access_token"])
    except OAuthError as e:
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))

    if info is None:
        clear_gmb_cookie(response, settings)
        return ok({"connected": False, "reason": "Token invalid or expired"})

    scopes = (info.get("scope") or "").split()
    return ok({
        "connected": True,
        "email": info.get("email"),
        "scopes": scopes,
        "expires_in": info.get("expires_in"),
        "has_business_scope": BUSINESS_SCOPE in scopes,
    })


@router.get("/tokens")
async def get_tokens(request: Request):
    tokens = read_gmb_tokens(request)
    if not tokens:
        raise HTTPException(status_code=401, detail="No GMB tokens found")

    visible = normalize_tokens(tokens)
    has_refresh = bool(visible.pop("refresh_token", None))
    return ok({**visible, "has_refresh_token": has_refresh})


@router.post("/tokens")
async def store_tokens(body: TokensRequest, request: Request, response: Response):
    if not body.access_token or not body.token_type:
        raise HTTPException(status_code=400, detail="access_token and token_type are required")

    tokens = normalize_tokens(body.model_dump(exclude_none=True))
    set_gmb_cookie(response, tokens, get_app_settings(request))
    return ok(message="Tokens stored")


@router.get("/user")
def user(request: Request):
    tokens = read_gmb_tokens(request)
    if not tokens or not tokens.get("access_token"):
        raise HTTPException(status_code=401, detail="GMB authentication required")
    try:
        profile = request.app.state.oauth.get_user_info(tokens["access_token"])
    except OAuthError as e:
        raise HTTPException(status_code=e.status_code or 502, detail=str(e))
    return ok(profile)
