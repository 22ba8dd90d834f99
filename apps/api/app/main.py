from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .logging_setup import configure_logging
from .metrics import BUILD_INFO, router as metrics_router
from .middleware import RequestIdAndTimingMiddleware
from .routers import admin, availability, debug, health, ready
from .settings import settings


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="French Streaming Availability API", version=settings.app_version)
    app.add_middleware(RequestIdAndTimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(availability.router)
    app.include_router(admin.router)
    app.include_router(debug.router)
    app.include_router(health.router)
    app.include_router(ready.router)
    app.include_router(metrics_router)
    BUILD_INFO.labels(version=settings.app_version, sha=settings.git_sha or "", env=settings.environment).set(1)
    return app


app = create_app()
