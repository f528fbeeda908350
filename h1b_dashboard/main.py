"""
h1b_dashboard/main.py — FastAPI app serving cached dashboard reports.

Endpoints:
  GET    /<report path>      — one per report, see routes.py
  GET    /health             — Liveness check + database availability
  GET    /cache/status       — Per-report cache state
  DELETE /cache              — Drop every cached report
  DELETE /cache/{report}     — Drop one cached report
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from h1b_dashboard.cache_manager import ReportCacheManager
from h1b_dashboard.config import Settings, settings as default_settings
from h1b_dashboard.reports import UnknownReportError
from h1b_dashboard.routes import get_cache_manager, router as report_router

logging.basicConfig(
    level=default_settings.log_level,
    format="%(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    cache_manager: ReportCacheManager | None = None,
) -> FastAPI:
    """
    Build the app around one ReportCacheManager.

    The manager is created here (not in the lifespan) so it is reachable
    through app.state even when the ASGI lifespan is not run, e.g. in tests.
    """
    settings = settings or default_settings
    manager = cache_manager or ReportCacheManager.from_settings(settings)

    # ── Lifespan (startup / shutdown) ───────────────────────────────────────

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up…")
        await manager.database.connect()
        if settings.warm_on_startup:
            manager.start_warm()
        manager.start_refresh(settings.cache_refresh_seconds)
        yield
        logger.info("Shutting down…")
        await manager.shutdown()

    # ── App instance ────────────────────────────────────────────────────────

    app = FastAPI(
        title="H1B Dashboard API",
        description="Cached H1B, salary, industry and company statistics",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.cache_manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(report_router)

    # ── Service routes ──────────────────────────────────────────────────────

    @app.get("/health")
    async def health(manager: ReportCacheManager = Depends(get_cache_manager)):
        return {"status": "ok", "database": manager.database.is_available()}

    @app.get("/cache/status", summary="Per-report cache state")
    async def cache_status(manager: ReportCacheManager = Depends(get_cache_manager)):
        return manager.status()

    @app.delete("/cache", summary="Clear every cached report")
    async def clear_cache(manager: ReportCacheManager = Depends(get_cache_manager)):
        manager.invalidate_all()
        return {"message": "Cache cleared."}

    @app.delete("/cache/{report}", summary="Clear one cached report")
    async def clear_report(
        report: str,
        manager: ReportCacheManager = Depends(get_cache_manager),
    ):
        try:
            manager.invalidate(report)
        except UnknownReportError:
            raise HTTPException(status_code=404, detail=f"Unknown report: {report}")
        return {"message": f"Cache cleared for {report}."}

    return app


app = create_app()
