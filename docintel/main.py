"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docintel import __version__
from docintel.api import router as api_router
from docintel.core.config import get_settings
from docintel.core.container import ServiceContainer, build_container
from docintel.core.errors import DocIntelError
from docintel.core.logging import get_logger, log_with_context

logger = get_logger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container(get_settings())
    yield


async def handle_docintel_error(request: Request, exc: DocIntelError) -> JSONResponse:
    log_with_context(
        logger,
        logging.ERROR if exc.status_code >= 500 else logging.INFO,
        f"{exc.category} on {request.url.path}: {exc.message}",
        category=exc.category,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in _LOCATION_PREFIXES]
        field_errors.setdefault(".".join(location) or "request", []).append(error.get("msg", ""))

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": {
                "category": "validation_error",
                "message": "Invalid request",
                "field_errors": field_errors,
            },
        },
    )


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        container: Pre-wired services (tests); built from settings at startup otherwise
    """
    app = FastAPI(
        title="DocIntel",
        description="Document intelligence service: ingestion, retrieval, chat and analysis",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_exception_handler(DocIntelError, handle_docintel_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "ok"}, status_code=200)

    app.include_router(api_router, prefix="/v1", tags=["v1"])
    return app


app = create_app()
