import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lexgate.api.v1.ai import router as ai_router
from lexgate.core.config import get_settings
from lexgate.services.ai.common.errors import AllProvidersFailedError, ConfigurationError

settings = get_settings()

logger = logging.getLogger(__name__)

app = FastAPI(
    title="lexgate API",
    version="0.4.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)


@app.on_event("startup")
async def _startup_jobs():
    errors = settings.validate_required_config()
    if not errors:
        return
    if settings.is_production:
        raise RuntimeError(f"Configuration validation failed in production environment: {'; '.join(errors)}")
    for error in errors:
        logger.warning("Configuration problem: %s", error)


if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.include_router(ai_router, prefix="/api/v1", tags=["ai"])


@app.exception_handler(ConfigurationError)
async def _configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(AllProvidersFailedError)
async def _all_providers_failed_handler(request: Request, exc: AllProvidersFailedError):
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "tried_providers": exc.tried_providers},
    )


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx in production unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"detail": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health_check():
    return {"status": "ok"}
