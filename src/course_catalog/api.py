"""FastAPI application exposing authentication, course and profile endpoints."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import services
from .auth import get_current_user, get_store, get_token_service
from .config import Settings, settings
from .errors import CatalogError
from .schemas import MessageData
from .store import Store, create_store
from .tokens import TokenIdentity, TokenService

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

router = APIRouter(prefix="/api")


class LoginRequest(BaseModel):
    """Request body for user login."""

    username: Optional[str] = None
    password: Optional[str] = None


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a successful result; keys without a value are left out."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception("error handling %s %s", request.method, request.url.path)
        raise


async def handle_catalog_error(request: Request, exc: CatalogError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages: List[str] = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            messages.append("Malformed JSON body")
        else:
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return error_response(400, ", ".join(messages) or "Invalid request")


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # unknown paths and unsupported methods both read as a missing route
    if exc.status_code in (404, 405):
        return error_response(404, "Route not found")
    return error_response(exc.status_code, str(exc.detail))


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Something went wrong!")


@router.post("/auth/login")
def login(
    payload: Optional[LoginRequest] = Body(None),
    store: Store = Depends(get_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Exchange username and password for a session token."""
    credentials = payload or LoginRequest()
    result = services.authenticate(store, tokens, credentials.username, credentials.password)
    return envelope(result)


@router.post("/auth/logout")
def logout(user: TokenIdentity = Depends(get_current_user)):
    """Acknowledge a logout; the client discards its token."""
    logger.info("logout user=%s", user.user_id)
    return envelope(MessageData(message="Logged out successfully"))


@router.get("/courses")
def list_courses(store: Store = Depends(get_store)):
    """Return the complete course collection."""
    return envelope(services.list_courses(store))


@router.get("/courses/{course_id}")
def get_course(course_id: str, store: Store = Depends(get_store)):
    return envelope(services.get_course(store, course_id))


@router.post("/courses", status_code=201)
def create_course(
    payload: Any = Body(None),
    store: Store = Depends(get_store),
    user: TokenIdentity = Depends(get_current_user),
):
    """Create a course owned by the caller unless the body names an owner."""
    course = services.create_course(store, payload, owner_id=user.user_id)
    return envelope(course, message="Course created successfully")


@router.put("/courses/{course_id}", dependencies=[Depends(get_current_user)])
def update_course(
    course_id: str,
    payload: Any = Body(None),
    store: Store = Depends(get_store),
):
    """Apply a partial update to a course."""
    course = services.update_course(store, course_id, payload)
    return envelope(course, message="Course updated successfully")


@router.delete("/courses/{course_id}", dependencies=[Depends(get_current_user)])
def delete_course(course_id: str, store: Store = Depends(get_store)):
    services.delete_course(store, course_id)
    return envelope(MessageData(message="Course deleted successfully"))


@router.get("/profile")
def get_profile(
    store: Store = Depends(get_store),
    user: TokenIdentity = Depends(get_current_user),
):
    """Return the caller's profile with their course count."""
    return envelope(services.get_profile(store, user.user_id))


@router.put("/profile")
def update_profile(
    payload: Any = Body(None),
    store: Store = Depends(get_store),
    user: TokenIdentity = Depends(get_current_user),
):
    """Change the caller's username and email."""
    updated = services.update_profile(store, user.user_id, payload)
    return envelope(updated, message="Profile updated successfully")


def health() -> Dict[str, str]:
    return {"status": "OK", "message": "Server is running"}


def create_app(
    config: Settings = settings,
    store: Optional[Store] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    """Build the application around an explicit store and token service."""
    app = FastAPI(title=config.api_title)
    app.state.settings = config
    app.state.store = store if store is not None else create_store(config)
    app.state.tokens = tokens or TokenService.from_settings(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(CatalogError, handle_catalog_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(router)
    app.add_api_route("/health", health, methods=["GET"])
    return app


app = create_app()
