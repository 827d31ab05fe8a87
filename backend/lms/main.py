"""FastAPI application factory.

`create_app` wires the collaborators (database, mailer, object storage,
identity provider, outbox dispatcher) at startup, attaches them to
`app.state` and tears them down on shutdown. Routes live in
`lms.routers`; every response, success or failure, uses the
`{success, message, data}` envelope.
"""

import json
import logging
import os
import sys
import threading
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings
from .database import Database
from .errors import LMSError, ValidationError
from .outbox import OutboxDispatcher
from .responses import fail, ok
from .routers import ROUTERS
from .utils.mailer import Mailer
from .utils.oauth import GoogleIdentityProvider
from .utils.rate_limit import InMemoryRateLimiter
from .utils.storage import LocalObjectStorage

logger = logging.getLogger("lms.api")

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def install_fatal_hooks(settings: Settings) -> None:
    """Log uncaught exceptions from any thread; exit if configured to."""
    fatal = logging.getLogger("lms")

    def _handle(exc_type, exc, tb, where: str) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        fatal.critical("uncaught exception in %s", where, exc_info=(exc_type, exc, tb))
        if settings.EXIT_ON_FATAL_ERROR:
            logging.shutdown()
            # os-level exit so a worker thread can bring the process down too
            os._exit(1)

    sys.excepthook = lambda t, e, tb: _handle(t, e, tb, "main thread")
    threading.excepthook = lambda args: _handle(
        args.exc_type, args.exc_value, args.exc_traceback, f"thread {args.thread.name if args.thread else '?'}"
    )


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LMSError)
    async def lms_error_handler(request: Request, exc: LMSError):
        return JSONResponse(status_code=exc.status_code, content=fail(exc.message, exc.to_dict()))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = ValidationError()
        for err in exc.errors():
            loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
            error.add(".".join(loc) or "request", err.get("msg", "invalid value"))
        return JSONResponse(status_code=error.status_code, content=fail(error.message, error.to_dict()))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(message, {"type": "HTTPError", "message": message}),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=fail("Server Error", {"type": "ServerError", "message": "Server Error"}))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(settings.DATABASE_URL)
        db.create_all()
        storage = LocalObjectStorage(settings.UPLOAD_DIR, settings.UPLOAD_BASE_URL)
        storage.open()
        provider = GoogleIdentityProvider(settings)
        mailer = Mailer(settings)
        dispatcher = OutboxDispatcher(
            db, mailer, max_attempts=settings.OUTBOX_MAX_ATTEMPTS, poll_seconds=settings.OUTBOX_POLL_SECONDS
        )
        app.state.db = db
        app.state.storage = storage
        app.state.identity_provider = provider
        app.state.mailer = mailer
        app.state.dispatcher = dispatcher
        if not settings.OUTBOX_INLINE:
            dispatcher.start()
        logger.info("LMS API started (env=%s, outbox=%s)", settings.ENV, "inline" if settings.OUTBOX_INLINE else "thread")
        try:
            yield
        finally:
            dispatcher.stop()
            provider.close()
            storage.close()
            db.dispose()
            logger.info("LMS API stopped")

    app = FastAPI(title="LMS API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = InMemoryRateLimiter(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW_SECONDS)

    _register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    @app.get("/api/health")
    def health():
        return ok({"status": "ok", "env": settings.ENV}, "Server is running")

    @app.get("/api")
    def api_root():
        return ok({"name": "LMS API", "version": __version__}, "Welcome to the LMS API")

    app.mount(settings.UPLOAD_BASE_URL, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

    # middleware added later wraps the ones added earlier

    @app.middleware("http")
    async def outbox_flush_middleware(request: Request, call_next):
        response = await call_next(request)
        if settings.OUTBOX_INLINE and request.method not in ("GET", "HEAD", "OPTIONS"):
            await run_in_threadpool(request.app.state.dispatcher.dispatch_pending)
        return response

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if request.url.path.startswith("/api"):
            allowed, retry_after = request.app.state.rate_limiter.allow(_client_key(request))
            if not allowed:
                return JSONResponse(
                    status_code=429,
                    content={"success": False, "error": {"type": "RateLimitError", "message": RATE_LIMIT_MESSAGE}},
                    headers={"Retry-After": str(retry_after)},
                )
        return await call_next(request)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        started = time.perf_counter()
        response: Response
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
            logger.exception(
                "request_failed %s",
                json.dumps(
                    {
                        "request_id": req_id,
                        "path": request.url.path,
                        "method": request.method,
                        "duration_ms": elapsed_ms,
                        "client": _client_key(request),
                    },
                    ensure_ascii=True,
                ),
            )
            raise
        response.headers["X-Request-ID"] = req_id
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": _client_key(request),
                },
                ensure_ascii=True,
            ),
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_fatal_hooks(settings)
    return app


app = create_app()
