"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from clinic_insights.clients.clinic_api import ClinicApiError, SessionExpiredError
from clinic_insights.config import settings
from clinic_insights.routes import glucose, me, patients

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Clinical data must not be cached by intermediaries
        response.headers["Cache-Control"] = "no-store"
        return response


app = FastAPI(
    title="Clinic Insights",
    description="Longitudinal glucose, HbA1c and consultation views over the clinic API",
    version="0.1.0",
)

app.add_middleware(SecurityHeadersMiddleware)

_cors_origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(patients.router, prefix="/api")
app.include_router(glucose.router, prefix="/api")
app.include_router(me.router, prefix="/api")


@app.exception_handler(SessionExpiredError)
async def session_expired_handler(request: Request, exc: SessionExpiredError) -> JSONResponse:
    """Credential missing or rejected: send the client back to login."""
    logger.info("Session rejected on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "login_url": settings.login_path},
    )


@app.exception_handler(ClinicApiError)
async def clinic_api_error_handler(request: Request, exc: ClinicApiError) -> JSONResponse:
    """Collaborator failure: surface a retryable error, never a partial view."""
    logger.warning("Clinic API failure on %s (status=%s): %s", request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=502,
        content={"detail": exc.detail, "retryable": True},
    )


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API info."""
    return {
        "name": "Clinic Insights API",
        "version": "0.1.0",
        "docs": "/docs",
    }
