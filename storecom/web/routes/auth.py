"""
Dashboard authentication: login, register, session, logout.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...application import AccountError
from ...domain.permissions import get_role_permissions
from ...infrastructure.security import SessionData, create_session_token
from ..deps import get_app_settings, ok, require_session, set_session_cookie
from ..schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginRequest, request: Request, response: Response):
    accounts = request.app.state.accounts
    try:
        session = accounts.login(body.email, body.password)
    except AccountError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    set_session_cookie(response, create_session_token(session), get_app_settings(request))
    return ok({"user": session.to_dict()}, message="Login successful")


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, request: Request,
                   session: SessionData = Depends(require_session)):
    accounts = request.app.state.accounts
    try:
        user = accounts.register(session, body.model_dump())
    except AccountError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return ok(user.to_dict(), message="User created successfully")


@router.get("/session")
async def get_session_user(session: SessionData = Depends(require_session)):
    return ok({"user": session.to_dict(), "permissions": get_role_permissions(session.role)})


@router.post("/logout")
async def logout(request: Request, response: Response):
    response.delete_cookie(get_app_settings(request).auth.session_cookie, path="/")
    return ok(message="Logged out successfully")
