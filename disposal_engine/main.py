"""Case package disposal assignment engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from disposal_engine.adapters.persistence.database import engine
from disposal_engine.config import settings
from disposal_engine.domain.errors import EngineError
from disposal_engine.domain.value_objects.enums import FailureKind
from disposal_engine.infrastructure.api.routes_assignment import router as assignment_router
from disposal_engine.infrastructure.api.routes_flows import router as flows_router
from disposal_engine.infrastructure.api.routes_health import router as health_router
from disposal_engine.infrastructure.api.routes_packages import router as packages_router
from disposal_engine.infrastructure.api.routes_rules import router as rules_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS: dict[FailureKind, int] = {
    FailureKind.NOT_FOUND: 404,
    FailureKind.VALIDATION: 400,
    FailureKind.CONCURRENT_MODIFICATION: 409,
    FailureKind.INVALID_TRANSITION: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status = ERROR_STATUS.get(exc.kind, 500)
    if status >= 500:
        logger.error("Unhandled engine error on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"error": exc.kind.value, "detail": str(exc), "retryable": exc.retryable},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Disposal Assignment Engine",
        description="Rule-gated, strategy-ranked assignment of case packages to disposal organizations",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(EngineError, engine_error_handler)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignment_router, prefix="/api")
    app.include_router(rules_router, prefix="/api")
    app.include_router(packages_router, prefix="/api")
    app.include_router(flows_router, prefix="/api")

    return app


app = create_app()
