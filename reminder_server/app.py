from __future__ import annotations

import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .logging_config import configure_logging, get_logger
from .routes import api_router

logger = get_logger(__name__)


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Invalid request", "detail": jsonable_errors(exc)},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        logger.debug(
            "http error",
            extra={"detail": exc.detail, "status": exc.status_code, "path": str(request.url)},
        )
        detail = exc.detail
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return JSONResponse({"ok": False, "error": detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with non-JSON context values stringified."""
    return json.loads(json.dumps(exc.errors(), default=str))


configure_logging()
_settings = get_settings()

app = FastAPI(
    title=_settings.app_name,
    version=_settings.app_version,
    docs_url=_settings.resolved_docs_url,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)


@app.on_event("startup")
# App-start scheduling pass and reminder delivery
async def _start_services() -> None:
    logger.info("🚀 Reminder Scheduler starting up...")

    try:
        from .services.background_services import get_background_manager

        background_manager = get_background_manager()
        await background_manager.start_services()

        logger.info("✅ Reminder Scheduler startup completed successfully")

    except Exception as e:
        logger.exception(f"❌ Error during startup: {e}")


@app.on_event("shutdown")
# Gracefully shutdown background services when the app stops
async def _stop_services() -> None:
    logger.info("Reminder Scheduler shutting down...")

    try:
        from .services.background_services import get_background_manager

        background_manager = get_background_manager()
        await background_manager.stop_services()

        logger.info("Reminder Scheduler shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


__all__ = ["app"]
