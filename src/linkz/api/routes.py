"""FastAPI routes for the Simple Linkz API."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from linkz import __version__
from linkz.api.fetch import fetch_favicon, fetch_page_title
from linkz.api.models import PASSWORD_MIN, USERNAME_MAX, USERNAME_MIN, CredentialsRequest
from linkz.api.validators import validate_links, validate_preferences
from linkz.auth.cookies import COOKIE_MAX_AGE, COOKIE_NAME
from linkz.auth.service import AccountService, CredentialError
from linkz.storage.loader import StorageError
from linkz.storage.store import DocumentStore, resolve_data_dir

logger = logging.getLogger(__name__)

_API_PREFIX = "/api/"

_OPEN_PATHS = {
    "/api/setup/check",
    "/api/setup",
    "/api/login",
    "/api/logout",
}

EXPORT_FILENAME = "simple-linkz-export.json"


class LinkzAuthMiddleware(BaseHTTPMiddleware):
    """Reject API requests without a live session, except setup and login endpoints."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if not path.startswith(_API_PREFIX) or path in _OPEN_PATHS:
            return await call_next(request)

        accounts: AccountService = request.app.state.accounts
        cookie = request.cookies.get(COOKIE_NAME, "")
        if await accounts.is_authenticated(cookie):
            return await call_next(request)

        return JSONResponse({"error": "Unauthorized"}, status_code=401)


def _fail(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _set_session_cookie(resp: Response, value: str) -> None:
    resp.set_cookie(
        COOKIE_NAME,
        value,
        max_age=COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
    )


def _clear_session_cookie(resp: Response) -> None:
    resp.delete_cookie(COOKIE_NAME, path="/", httponly=True, samesite="lax")


def _reject_constant(name: str) -> None:
    raise ValueError(f"Unsupported JSON constant: {name}")


async def _json_body(request: Request) -> Optional[dict[str, Any]]:
    """Parse a JSON object body; None if it is not valid JSON or not an object."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def create_app(
    data_dir: Optional[Union[str, Path]] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        data_dir: Directory holding data.json. Falls back to $LINKZ_DATA_DIR, then ./data.
        http_transport: Transport for outbound page-title/favicon fetches (tests inject a mock).

    Returns:
        FastAPI application instance
    """
    store = DocumentStore(resolve_data_dir(data_dir))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if await store.initialize():
            logger.info("Initialized new data document at %s", store.path)
        else:
            logger.info("Using data document at %s", store.path)
        yield

    app = FastAPI(
        title="Simple Linkz",
        version=__version__,
        description="Single-user link dashboard",
        lifespan=lifespan,
    )

    # ── App state ─────────────────────────────────────────────────────────────
    app.state.store = store
    app.state.accounts = AccountService(store)
    app.state.http_transport = http_transport

    app.add_middleware(LinkzAuthMiddleware)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    accounts: AccountService = app.state.accounts

    # ── Setup ─────────────────────────────────────────────────────────────────

    @app.get("/api/setup/check")
    async def get_setup_check() -> JSONResponse:
        return JSONResponse({"needsSetup": not await accounts.check_has_account()})

    @app.post("/api/setup")
    async def post_setup(body: CredentialsRequest) -> JSONResponse:
        username = body.username or ""
        password = body.password or ""
        if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
            return _fail(f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters")
        if len(password) < PASSWORD_MIN:
            return _fail(f"Password must be at least {PASSWORD_MIN} characters")
        try:
            await accounts.create_account(username, password)
        except CredentialError as exc:
            return _fail(str(exc))
        return JSONResponse({"success": True})

    # ── Auth ──────────────────────────────────────────────────────────────────

    @app.post("/api/login")
    async def post_login(body: CredentialsRequest) -> JSONResponse:
        if not body.username or not body.password:
            return _fail("Username and password required")
        try:
            signed = await accounts.login(body.username, body.password)
        except CredentialError as exc:
            return _fail(str(exc), status_code=401)
        resp = JSONResponse({"success": True})
        _set_session_cookie(resp, signed)
        return resp

    @app.post("/api/logout")
    async def post_logout(request: Request) -> JSONResponse:
        await accounts.logout(request.cookies.get(COOKIE_NAME))
        resp = JSONResponse({"success": True})
        _clear_session_cookie(resp)
        return resp

    @app.post("/api/reset-credentials")
    async def post_reset_credentials(request: Request) -> JSONResponse:
        if not await accounts.reset_credentials(request.cookies.get(COOKIE_NAME)):
            return JSONResponse({"error": "Unauthorized"}, status_code=401)
        resp = JSONResponse({"success": True})
        _clear_session_cookie(resp)
        return resp

    # ── Links ─────────────────────────────────────────────────────────────────

    @app.get("/api/links")
    async def get_links() -> JSONResponse:
        return JSONResponse({"links": await store.get_links()})

    @app.post("/api/links")
    async def post_links(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None:
            return _fail("Invalid JSON")
        links = body.get("links")
        error = validate_links(links)
        if error:
            return _fail(error)
        await store.save_links(links)
        return JSONResponse({"success": True})

    # ── Preferences ───────────────────────────────────────────────────────────

    @app.get("/api/preferences")
    async def get_preferences() -> JSONResponse:
        return JSONResponse({"preferences": await store.get_preferences()})

    @app.post("/api/preferences")
    async def post_preferences(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None:
            return _fail("Invalid JSON")
        preferences = body.get("preferences")
        error = validate_preferences(preferences)
        if error:
            return _fail(error)
        await store.save_preferences(preferences)
        return JSONResponse({"success": True})

    # ── Import / export ───────────────────────────────────────────────────────

    @app.get("/api/export")
    async def get_export() -> Response:
        document = await store.read()
        payload = {
            "links": document.get("links") or [],
            "preferences": document.get("preferences") or {},
        }
        return Response(
            content=json.dumps(payload, indent=2, ensure_ascii=False),
            media_type="application/json",
            headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
        )

    @app.post("/api/import")
    async def post_import(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if body is None:
            return _fail("Invalid JSON")
        links = body.get("links")
        preferences = body.get("preferences")

        if links is not None:
            error = validate_links(links)
            if error:
                return _fail(error)
        if preferences is not None and validate_preferences(preferences, partial=True):
            return _fail("Invalid preferences")

        if links is not None:
            await store.save_links(links)
        if preferences is not None:
            await store.save_preferences(preferences)
        return JSONResponse({"success": True})

    # ── Link metadata ─────────────────────────────────────────────────────────

    @app.get("/api/page-title")
    async def get_page_title(url: str = "") -> JSONResponse:
        if not url:
            return JSONResponse({"error": "URL required"}, status_code=400)
        try:
            title = await fetch_page_title(url, transport=app.state.http_transport)
        except ValueError:
            return JSONResponse({"error": "Invalid URL"}, status_code=400)
        return JSONResponse({"title": title})

    @app.get("/api/favicon")
    async def get_favicon(url: str = "") -> Response:
        if not url:
            return Response(status_code=400)
        try:
            favicon = await fetch_favicon(url, transport=app.state.http_transport)
        except ValueError:
            favicon = None
        if favicon is None:
            return Response(status_code=404)
        return Response(
            content=favicon.content,
            media_type=favicon.media_type,
            headers={"Cache-Control": "public, max-age=86400"},
        )

    return app
