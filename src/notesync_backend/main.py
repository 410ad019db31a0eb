from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from notesync_backend.config import settings
from notesync_backend.db import dispose_engine
from notesync_backend.error_handlers import register_error_handlers
from notesync_backend.routers import auth, notes, todos, users

_REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware:
    """Tag every HTTP request with an id and echo it back as ``X-Request-Id``.

    A non-empty id sent by the client is reused, otherwise a fresh uuid4 is
    generated. Error envelopes pick it up from ``request.state.request_id``.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app: ASGIApp = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(_REQUEST_ID_HEADER, "").strip() or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[_REQUEST_ID_HEADER] = request_id
            await send(message)

        await self.app(scope, receive, send_with_request_id)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    yield
    await dispose_engine()


logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("notesync_backend.access")
for msg in settings.security_warnings():
    logger.warning("SECURITY WARNING: %s", msg)


app = FastAPI(title=settings.app_name, lifespan=_lifespan)

register_error_handlers(app)


@app.middleware("http")
async def access_log_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    # auth_user_id is set by deps.get_current_user on authenticated routes.
    access_logger.info(
        "%s %s status=%s user_id=%s request_id=%s duration_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        getattr(request.state, "auth_user_id", None),
        getattr(request.state, "request_id", None),
        elapsed_ms,
    )
    return response


origins = settings.cors_origins_list()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Bearer auth only, no cookies.
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Added last so it wraps everything else, including the access log.
app.add_middleware(RequestIdMiddleware)


@app.get("/health")
def health():
    return {"status": "ok", "message": "Server is running"}


app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(users.router, prefix=settings.api_prefix)
app.include_router(notes.router, prefix=settings.api_prefix)
app.include_router(todos.router, prefix=settings.api_prefix)


@app.api_route(
    f"{settings.api_prefix.rstrip('/')}/{{path:path}}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def _api_fallback_not_found(path: str) -> None:  # noqa: ARG001
    raise HTTPException(status_code=404, detail="Not Found")
