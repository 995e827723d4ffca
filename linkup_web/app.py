"""FastAPI application factory for the Linkup API"""

from __future__ import annotations

import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from linkup.auth import AuthService
from linkup.services.account_service import AccountService
from linkup.services.comment_service import CommentService
from linkup.services.email_service import EmailNotifier, Notifier
from linkup.services.post_service import PostService
from linkup.stores import AccountRepository, CommentRepository, DocumentStore, PostRepository
from linkup.utils.config import Settings, config_manager
from linkup.utils.exceptions import LinkupError
from linkup.utils.logger import get_logger, setup_logger

from .auth_routes import router as auth_router
from .comment_routes import router as comment_router
from .post_routes import router as post_router
from .user_routes import router as user_router

logger = get_logger(__name__)


class RequestLogMiddleware:
    """Raw ASGI access log: method, path, status and duration of each request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return
        started = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "HTTP request",
                method=scope.get("method"),
                path=scope.get("path"),
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )


def _error_response(status_code: int, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "fail" if status_code < 500 else "error", "message": message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Single translation point from typed failures to the error envelope."""

    @app.exception_handler(LinkupError)
    async def handle_linkup_error(request: Request, exc: LinkupError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=str(exc))
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = []
        for error in exc.errors():
            location = ".".join(
                str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")
            )
            text = str(error.get("msg", "Invalid value"))
            messages.append(f"{location}: {text}" if location else text)
        return _error_response(400, messages)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Invalid routing {request.url.path}"
        return _error_response(exc.status_code, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, error=str(exc))
        return _error_response(500, "Something went wrong")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Callable[[], float]] = None,
) -> FastAPI:
    """
    Build the API.

    Everything a request needs (settings, repositories, services) is created
    here once and kept on app.state. Tests pass their own settings, store,
    notifier and clock.
    """
    settings = settings or config_manager.load_settings()

    setup_logger(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )

    app = FastAPI(
        title=f"{settings.app.name} API",
        description="Social networking backend: accounts, posts, comments and likes",
        version=settings.app.version,
    )

    cors_origins = [origin.strip() for origin in settings.app.cors_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if settings.app.environment == "production" else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLogMiddleware)

    store = store or DocumentStore(settings.storage.data_dir)
    accounts = AccountRepository(store)
    posts = PostRepository(store)
    comments = CommentRepository(store)
    page_size = settings.query.page_size

    auth_service = AuthService(
        accounts, notifier or EmailNotifier(settings.email), settings.auth, clock=clock
    )
    post_service = PostService(posts, comments, accounts, page_size)

    app.state.settings = settings
    app.state.auth_service = auth_service
    app.state.account_service = AccountService(accounts, auth_service, page_size)
    app.state.post_service = post_service
    app.state.comment_service = CommentService(comments, post_service, page_size)

    register_exception_handlers(app)

    @app.get("/api/health")
    async def health():
        return {"status": "success", "app": settings.app.name, "version": settings.app.version}

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(post_router)
    app.include_router(comment_router)

    logger.info(
        "Application configured",
        app_name=settings.app.name,
        version=settings.app.version,
        environment=settings.app.environment,
        data_dir=settings.storage.data_dir,
    )
    return app
