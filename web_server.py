"""
Web Server — FastAPI backend for grounded search.

Endpoints:
  GET    /api/search?q=       → new search   {sessionId, summary, sources}
  POST   /api/follow-up       → next turn    {summary, sources}
  POST   /api/keys/custom     → use custom API keys
  DELETE /api/keys/custom     → back to default keys
  GET    /api/keys/status     → {isUsingCustomKeys, keyCount}
  POST   /api/auth/login | /api/auth/logout, GET /api/auth/status
  GET    /health

Errors are returned as {"message": ...}:
  ValidationError → 400, NotFoundError → 404, UpstreamError → 500

Usage:
  python3 web_server.py
  → API on http://localhost:8000
"""
import asyncio
import json
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

import config
from core.auth import AuthSessions
from core.config import settings
from core.errors import NotFoundError, SearchError, UpstreamError, ValidationError
from core.search_controller import SearchController, build_controller


class LoginRequired(Exception):
    pass


# ──────────────────────────────────────────────
# Dependencies
# ──────────────────────────────────────────────
def get_controller(request: Request) -> SearchController:
    return request.app.state.controller


def get_auth(request: Request) -> AuthSessions:
    return request.app.state.auth


def require_login(request: Request, auth: AuthSessions = Depends(get_auth)) -> None:
    """Guard for API routes. Open when no login is configured."""
    if auth.enabled and not auth.is_authenticated(request.cookies.get(config.AUTH_COOKIE_NAME)):
        raise LoginRequired()


async def _read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


# ──────────────────────────────────────────────
# Search + Follow-up
# ──────────────────────────────────────────────
api = APIRouter(prefix="/api", dependencies=[Depends(require_login)])


@api.get("/search")
async def search_endpoint(q: str | None = None,
                          controller: SearchController = Depends(get_controller)):
    if not q or not q.strip():
        raise ValidationError("Query parameter 'q' is required")
    # Blocking Gemini call runs in a worker thread
    result = await asyncio.to_thread(controller.new_search, q)
    return result.to_dict()


@api.post("/follow-up")
async def follow_up_endpoint(request: Request,
                             controller: SearchController = Depends(get_controller)):
    body = await _read_json(request)
    session_id = body.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        raise ValidationError("sessionId is required")
    result = await asyncio.to_thread(controller.follow_up, session_id, body.get("query"))
    return result.to_dict()


# ──────────────────────────────────────────────
# Custom API Keys
# ──────────────────────────────────────────────
@api.post("/keys/custom")
async def set_custom_keys_endpoint(request: Request,
                                   controller: SearchController = Depends(get_controller)):
    body = await _read_json(request)
    keys = body.get("keys")
    if not isinstance(keys, list):
        raise ValidationError("Keys must be an array")
    if not all(isinstance(k, str) for k in keys):
        raise ValidationError("Keys must be strings")
    status = controller.set_custom_keys(keys)
    return {"message": "Custom keys set successfully", **status}


@api.delete("/keys/custom")
async def clear_custom_keys_endpoint(controller: SearchController = Depends(get_controller)):
    status = controller.clear_custom_keys()
    return {"message": "Custom keys cleared successfully", **status}


@api.get("/keys/status")
async def key_status_endpoint(controller: SearchController = Depends(get_controller)):
    return controller.key_status()


# ──────────────────────────────────────────────
# Login
# ──────────────────────────────────────────────
auth_routes = APIRouter(prefix="/api/auth")


@auth_routes.post("/login")
async def login_endpoint(request: Request, auth: AuthSessions = Depends(get_auth)):
    body = await _read_json(request)
    token = auth.login(body.get("username"), body.get("password"))
    if token is None:
        return JSONResponse(status_code=401,
                            content={"message": "Invalid credentials", "isAuthenticated": False})

    response = JSONResponse({"message": "Login successful", "isAuthenticated": True})
    response.set_cookie(
        config.AUTH_COOKIE_NAME,
        token,
        max_age=config.AUTH_COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return response


@auth_routes.post("/logout")
async def logout_endpoint(request: Request, response: Response,
                          auth: AuthSessions = Depends(get_auth)):
    token = request.cookies.get(config.AUTH_COOKIE_NAME)
    if token:
        auth.logout(token)
        response.delete_cookie(config.AUTH_COOKIE_NAME)
    return {"message": "Logged out successfully", "isAuthenticated": False}


@auth_routes.get("/status")
async def auth_status_endpoint(request: Request, auth: AuthSessions = Depends(get_auth)):
    if not auth.enabled or auth.is_authenticated(request.cookies.get(config.AUTH_COOKIE_NAME)):
        return {"isAuthenticated": True}
    return JSONResponse(status_code=401, content={"isAuthenticated": False})


# ──────────────────────────────────────────────
# Error → JSON
# ──────────────────────────────────────────────
_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    UpstreamError: 500,
}


async def _search_error_handler(request: Request, exc: SearchError):
    status_code = next(
        (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        print(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"message": exc.message})


async def _login_required_handler(request: Request, exc: LoginRequired):
    return JSONResponse(status_code=401,
                        content={"message": "Unauthorized", "isAuthenticated": False})


# ──────────────────────────────────────────────
# App Factory
# ──────────────────────────────────────────────
def create_app(controller: SearchController | None = None,
               auth: AuthSessions | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        controller: Pre-built controller (tests). None → built from .env on startup,
                    which raises ConfigurationError when no API keys are set.
        auth: Login sessions. None → AUTH_USERNAME / AUTH_PASSWORD from .env.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.controller is None:
            app.state.controller = build_controller()
        if not app.state.auth.enabled:
            print("⚠️  AUTH_USERNAME / AUTH_PASSWORD not set — API is open to everyone.")
        print("🚀 Search Server ready!")
        yield

    app = FastAPI(title="Grounded Search", version="1.0", lifespan=lifespan)
    app.state.controller = controller
    app.state.auth = auth if auth is not None else AuthSessions(
        settings.AUTH_USERNAME, settings.AUTH_PASSWORD, max_age=config.AUTH_COOKIE_MAX_AGE,
    )

    app.include_router(api)
    app.include_router(auth_routes)
    app.add_exception_handler(SearchError, _search_error_handler)
    app.add_exception_handler(LoginRequired, _login_required_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


# ──────────────────────────────────────────────
# Run
# ──────────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run("web_server:app", host=config.HOST, port=config.PORT, reload=False)
