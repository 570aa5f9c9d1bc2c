from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from geoscope.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from geoscope.db.init_db import init_db
from geoscope.geo_authz.cache import AreaSetCache
from geoscope.geo_authz.errors import GeoAuthzError
from geoscope.logging_config import configure_app_logging
from geoscope.routers import activities, admin, analytics, geography, health, me
from geoscope.security.config import load_security_config
from geoscope.security.dependencies import enforce_security
from geoscope.settings import get_settings

logger = logging.getLogger(__name__)


async def geo_authz_error_handler(request: Request, exc: GeoAuthzError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s path=%s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(seed: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        if getattr(app.state, "security_config", None) is None:
            app.state.security_config = load_security_config(settings.resolved_security_config_path())
            logger.info("Loaded security config: %s", settings.resolved_security_config_path())
        if getattr(app.state, "area_set_cache", None) is None:
            app.state.area_set_cache = AreaSetCache(ttl_seconds=settings.area_set_cache_ttl_seconds)
        if seed:
            init_db()
            logger.info("Database initialized (tables ensured + seed if needed)")

        yield

    # Global dependency: applies security with zero changes to route handlers.
    app = FastAPI(title="geoscope", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    app.add_exception_handler(GeoAuthzError, geo_authz_error_handler)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(geography.router)
    app.include_router(activities.router)
    app.include_router(analytics.router)
    app.include_router(admin.router)

    return app


app = create_app()
