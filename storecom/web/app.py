"""
FastAPI Web Application - StoreCom Dashboard API and Microsites
================================================================

JSON API for the brand/store dashboard plus the public store microsites.

Every JSON response uses one envelope:
    {"success": true, "data": ..., "pagination"?, "stats"?, "message"?}
    {"success": false, "error": "..."}

ARCHITECTURAL DECISION:
    Services are built once in the lifespan and hung off app.state; routes
    read them from there. Tests pass fakes into create_app() instead of
    patching module globals.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..application import (
    AccountService,
    GmbSyncService,
    MicrositeService,
    PerformanceService,
    SentimentWorkflow,
    StoreImporter,
    SyncError,
    VerificationService,
)
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.gmb import GmbApiClient, GmbApiError, GoogleOAuthClient, OAuthError, TokenExpiredError
from ..infrastructure.llm import OpenRouterClient, ReplyGenerator, SentimentService
from ..infrastructure.persistence import init_database
from .deps import set_gmb_cookie
from .routes import (
    analytics,
    auth,
    brands,
    enquiries,
    gmb,
    gmb_auth,
    microsites,
    performance,
    posts,
    reviews,
    stores,
    verification,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, request: Optional[Request] = None) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"success": False, "error": message})
    # Tokens refreshed earlier in the request must survive a failing GMB call
    refreshed = getattr(request.state, "refreshed_gmb_tokens", None) if request else None
    if refreshed:
        set_gmb_cookie(response, refreshed, request.app.state.settings)
    return response


def _register_error_handlers(app: FastAPI):

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), request)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())[1:])
            message = f"{field_name}: {first.get('msg')}" if field_name else first.get("msg")
        else:
            message = "Invalid request"
        return _error(400, message)

    @app.exception_handler(TokenExpiredError)
    async def token_expired(request: Request, exc: TokenExpiredError):
        return _error(401, f"GMB token expired or invalid: {exc}", request)

    @app.exception_handler(GmbApiError)
    async def gmb_error(request: Request, exc: GmbApiError):
        logger.error(f"GMB API error on {request.url.path}: {exc}")
        return _error(exc.status_code or 502, str(exc), request)

    @app.exception_handler(OAuthError)
    async def oauth_error(request: Request, exc: OAuthError):
        logger.error(f"OAuth error on {request.url.path}: {exc}")
        return _error(exc.status_code or 401, str(exc), request)

    @app.exception_handler(SyncError)
    async def sync_error(request: Request, exc: SyncError):
        return _error(400, str(exc), request)


def create_app(settings: Optional[Settings] = None,
               oauth_client: Optional[GoogleOAuthClient] = None,
               gmb_client_factory: Optional[Callable[[str], GmbApiClient]] = None,
               sentiment_service: Optional[SentimentService] = None,
               reply_generator: Optional[ReplyGenerator] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to get_settings()
        oauth_client: Google OAuth client (tests pass one with a fake HTTP session)
        gmb_client_factory: access_token -> Business Profile API client
        sentiment_service: Sentiment analyzer used by the review and analytics routes
        reply_generator: LLM reply drafter
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for issue in settings.validate():
            logger.warning(issue)

        db = init_database(settings.database.path)
        oauth = oauth_client or GoogleOAuthClient(settings.google)
        factory = gmb_client_factory or (lambda token: GmbApiClient(token, settings.google))
        llm = OpenRouterClient(settings.llm)
        sentiment = sentiment_service or SentimentService(llm)

        app.state.settings = settings
        app.state.db = db
        app.state.oauth = oauth
        app.state.gmb_client_factory = factory
        app.state.accounts = AccountService(db, settings.auth)
        app.state.gmb_sync = GmbSyncService(db, oauth, factory)
        app.state.sentiment_service = sentiment
        app.state.sentiment_workflow = SentimentWorkflow(db, sentiment)
        app.state.reply_generator = reply_generator or ReplyGenerator(llm)
        app.state.store_importer = StoreImporter(db)
        app.state.microsites = MicrositeService(db)
        app.state.verification = VerificationService(db)
        app.state.performance = PerformanceService(db)

        app.state.accounts.seed_super_admin()
        logger.info(f"Database ready at {settings.database.path}")
        yield

    app = FastAPI(
        title="StoreCom Dashboard",
        description="Multi-brand store, review and Google Business Profile management",
        lifespan=lifespan,
    )
    _register_error_handlers(app)

    for module in (auth, gmb_auth, gmb, verification, brands, stores, reviews, posts, enquiries,
                   analytics, performance):
        app.include_router(module.router)
    # Catch-all /{brand_slug} pages go last
    app.include_router(microsites.router)

    @app.get("/api/health")
    async def health():
        return {"success": True, "data": {"status": "ok"}}

    return app


app = create_app()
