"""FastAPI application entry point for FeedbackHub.

This module initializes the FastAPI application, sets up logging, creates
the long-lived services, registers routers, and handles global exceptions.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feedbackhub.config import get_settings
from feedbackhub.logging_config import setup_logging, get_logger
from feedbackhub.middleware.auth import AuthService
from feedbackhub.models.database import init_db
from feedbackhub.routes import ai, forms, health, respond, results
from feedbackhub.services.ai_client import AIClient
from feedbackhub.services.guards import InFlightGuard
from feedbackhub.services.repository import ResponseFeed
from feedbackhub.services.template_loader import FormTemplateLoader

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Create database tables
    - Create the services shared by all requests (auth, response feed,
      AI client, template loader, in-flight request guard)

    Shutdown:
    - Log shutdown event

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings = get_settings()
    setup_logging()
    init_db()

    app.state.auth_service = AuthService(settings.secret_key)
    app.state.response_feed = ResponseFeed()
    app.state.ai_client = AIClient.from_settings(settings)
    app.state.template_loader = FormTemplateLoader(settings.forms_dir)
    app.state.request_guard = InFlightGuard()

    logger.info(
        f"FeedbackHub starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'configured'}, "
        f"AI: {'enabled' if settings.ai_enabled else 'disabled'}"
    )

    yield

    logger.info("FeedbackHub shutting down")


app = FastAPI(
    title="FeedbackHub",
    description="Dynamic feedback forms with validation, results and AI summaries",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag each request with an id, echoed in the X-Request-ID header."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra={"request_id": request_id}
    )
    return response


@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information."""
    settings = get_settings()
    return {
        "service": "FeedbackHub",
        "version": VERSION,
        "environment": settings.environment,
        "status": "operational"
    }


app.include_router(health.router, tags=["Health"])
app.include_router(forms.router, tags=["Forms"])
app.include_router(respond.router, tags=["Respond"])
app.include_router(results.router, tags=["Results"])
app.include_router(ai.router, tags=["AI"])


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Logs all unhandled exceptions and returns a generic error response
    to prevent leaking sensitive information.
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
