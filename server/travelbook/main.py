"""FastAPI application factory for the travel booking API."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_structured_logging,
    setup_tracing,
)
from .routers import auth_router, booking_router, health_router, metrics_router, package_router
from .services.media_service import PACKAGE_SUBDIR, PUBLIC_PREFIX

setup_structured_logging()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

ROUTERS = (health_router, auth_router, package_router, booking_router, metrics_router)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Prepare tracing, storage and the schema; release the engine on shutdown."""
    logger.info(
        "Starting travel booking API",
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    try:
        setup_tracing(SERVICE_NAME)
        instrument_sqlalchemy(engine)

        (settings.upload_dir / PACKAGE_SUBDIR).mkdir(parents=True, exist_ok=True)
        await init_db()
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    logger.info("Startup complete", extra={"upload_dir": str(settings.upload_dir.resolve())})

    yield

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error while closing the database engine: {e}")

    logger.info("Shutdown complete")


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as Problem Details."""
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


def create_app() -> FastAPI:
    """
    Build the application.

    Returns:
        FastAPI: Application with middleware, routers and the upload mount
    """
    app = FastAPI(
        title="Travelbook API",
        description="Travel packages, bookings and admin analytics",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)
    register_exception_handlers(app)

    for router in ROUTERS:
        app.include_router(router)

    # Uploaded files are public; the directory may not exist until the first upload
    app.mount(
        f"/{PUBLIC_PREFIX}",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name=PUBLIC_PREFIX,
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "travelbook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
