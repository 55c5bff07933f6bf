"""
Module: main.py
Description: FastAPI application entry point for the Participants API.

Initializes the FastAPI application with the participant routes,
middleware, and the error envelope shared by every failure response.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException

from participants_api.config.settings import settings
from participants_api.handlers.participants import router as participants_router
from participants_api.models.response import ErrorBody, ErrorResponse
from participants_api.utils.logger import get_logger

logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Participant records, bulk uploads, amenities and profile pictures for events",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(participants_router)


def _error_response(status_code: int, message: str, error_type: str, details: Any = None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(code=status_code, message=message, type=error_type, details=details)
    )
    return JSONResponse(status_code=status_code, content=body.to_content())


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns basic application health information.
    """
    logger.debug("Health check requested")

    return {
        "status": "ok",
        "message": "Participants API is healthy",
        "version": settings.app_version,
        "environment": settings.stage
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global HTTP exception handler.

    Renders HTTP exceptions (including routing 404/405) as the error
    envelope. A dict detail carries a message and optional details.
    """
    if isinstance(exc.detail, dict):
        message = str(exc.detail.get("message", ""))
        details = exc.detail.get("details")
    else:
        message = str(exc.detail)
        details = None

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=message,
        path=request.url.path,
        method=request.method
    )

    return _error_response(exc.status_code, message, "http_exception", details)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request validation failures as 400 errors."""
    details = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        path=request.url.path,
        method=request.method,
        errors=details
    )

    return _error_response(400, "Invalid request data", "validation_error", details)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors.

    Logs unexpected exceptions and returns a generic error response.
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method
    )

    return _error_response(500, "Internal server error", "internal_error")


@app.on_event("startup")
async def startup_event():
    """Application startup event handler."""
    logger.info(
        "Starting Participants API",
        version=settings.app_version,
        stage=settings.stage,
        region=settings.aws_region,
        table_name=settings.participants_table_name
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event handler."""
    logger.info("Shutting down Participants API")


# Lambda handler
handler = Mangum(app, lifespan="off")
