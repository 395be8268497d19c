"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contactlink import __version__
from contactlink.api.middleware import RequestContextMiddleware
from contactlink.api.routes import api_router
from contactlink.api.schemas.identify import HealthResponse
from contactlink.infrastructure.redis import redis_client
from contactlink.logging_config import setup_logging
from contactlink.persistence.database import engine
from contactlink.settings import settings

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await redis_client.connect()
    logger.info("Application started", extra={"environment": settings.environment})
    yield
    # Shutdown
    await redis_client.disconnect()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="contactlink",
    description="Customer contact identity reconciliation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)

app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with an error message."""
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    logger.warning("Rejected malformed request", extra={"path": request.url.path, "errors": errors})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"Invalid request body: {errors}"},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "message": "Server is running"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "contactlink API",
        "version": __version__,
        "docs": "/docs",
    }
