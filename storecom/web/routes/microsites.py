"""
Public microsite pages and their JSON twin.

This router owns the catch-all /{brand_slug} paths, so it must be
included after every /api router.
"""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse

from ...application.microsite import MicrositeNotFound, MicrositeService
from ..deps import ok
from ..pages import render_brand_page, render_not_found, render_store_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["microsites"])


def _microsites(request: Request) -> MicrositeService:
    return request.app.state.microsites


@router.get("/api/microsites/{brand_slug}")
async def brand_data(brand_slug: str, request: Request, search: str = "", city: str = "",
                     state: str = "", page: int = 1):
    try:
        data = _microsites(request).brand_page(brand_slug, search, city, state, page)
    except MicrositeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ok(data)


@router.get("/api/microsites/{brand_slug}/stores/{store_slug}")
async def store_data(brand_slug: str, store_slug: str, request: Request):
    try:
        data = _microsites(request).store_page(brand_slug, store_slug)
    except MicrositeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ok(data)


@router.get("/{brand_slug}", response_class=HTMLResponse)
async def brand_page(brand_slug: str, request: Request, search: str = "", city: str = "",
                     state: str = "", page: int = 1):
    try:
        data = _microsites(request).brand_page(brand_slug, search, city, state, page)
    except MicrositeNotFound as e:
        return HTMLResponse(render_not_found(str(e)), status_code=404)
    return HTMLResponse(render_brand_page(data))


@router.get("/{brand_slug}/stores/{store_slug}", response_class=HTMLResponse)
async def store_page(brand_slug: str, store_slug: str, request: Request):
    try:
        data = _microsites(request).store_page(brand_slug, store_slug)
    except MicrositeNotFound as e:
        return HTMLResponse(render_not_found(str(e)), status_code=404)
    return HTMLResponse(render_store_page(data))
