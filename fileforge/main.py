import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from fileforge.core.config import get_settings
from fileforge.core.errors import FileForgeError
from fileforge.core.logging import configure_logging
from fileforge.db.base import Base
from fileforge.db.session import engine
from fileforge.models import FileHistory, FileMetadata, ProcessingJob, User  # noqa: F401
from fileforge.routers import archive, auth, compression, conversion, extraction, history, jobs

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding one-minute window per client; idle clients are swept once a window."""

    def __init__(self, limit_per_minute: int, window_seconds: float = 60) -> None:
        self.limit_per_minute = limit_per_minute
        self.window_seconds = window_seconds
        self._hits: dict[str, Deque[float]] = {}
        self._last_sweep = 0.0

    def hit(self, key: str, now: float | None = None) -> bool:
        now = datetime.now(timezone.utc).timestamp() if now is None else now
        window_start = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now
        bucket = self._hits.setdefault(key, deque())
        while bucket and bucket[0] < window_start:
            bucket.popleft()
        if len(bucket) >= self.limit_per_minute:
            return False
        bucket.append(now)
        return True

    def _sweep(self, window_start: float) -> None:
        for key in list(self._hits):
            bucket = self._hits[key]
            while bucket and bucket[0] < window_start:
                bucket.popleft()
            if not bucket:
                del self._hits[key]


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    limiter = RateLimiter(settings.rate_limit_per_minute)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        key = request.client.host if request.client else "unknown"
        if request.url.path.startswith("/api/") and not limiter.hit(key):
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests from this IP, please try again later."},
            )
        return await call_next(request)

    @app.exception_handler(FileForgeError)
    async def fileforge_error_handler(request: Request, exc: FileForgeError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", extra={"path": request.url.path, "error": exc.message})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(auth.router)
    for module in (conversion, compression, extraction, archive, jobs, history):
        app.include_router(module.router, prefix="/api")

    for mount, directory in (("/uploads", settings.upload_dir), ("/processed", settings.processed_dir)):
        Path(directory).mkdir(parents=True, exist_ok=True)
        app.mount(mount, StaticFiles(directory=directory), name=mount.strip("/"))

    @app.on_event("startup")
    def startup() -> None:
        if settings.auto_create_tables:
            Base.metadata.create_all(bind=engine)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()
