"""
Wellness Service - FastAPI Application
Session and role resolution, coach directory and notifications for the NFP Wellness Platform
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from contextlib import asynccontextmanager

from app.routes import auth, coaches, emails, health
from app.utils.config import get_app_config, validate_configuration
from app.utils.dependencies import get_session_resolver
from app.utils.errors import SessionError
from app.utils.supabase_client import get_supabase_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("🚀 Wellness Service starting up...")

    validate_configuration()

    resolver = None
    if get_supabase_client().is_available():
        resolver = get_session_resolver()
        await resolver.start()
    else:
        logger.warning("Auth event subscription disabled: Supabase is not configured")

    yield

    logger.info("Wellness Service shutting down...")
    if resolver:
        await resolver.stop()


app_config = get_app_config()

# Create FastAPI application
app = FastAPI(
    title="Wellness Service",
    description="Session and role resolution, coach directory and notifications",
    version=app_config.service_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)


# CORS Configuration from environment
def get_cors_origins():
    origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if origins:
        return [o.strip() for o in origins.split(",") if o.strip()]
    return [app_config.frontend_url]


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(SessionError)
async def session_error_handler(request, exc: SessionError):
    """Caller-facing authentication errors"""
    content = {
        "error": True,
        "message": exc.message,
        "status_code": exc.status_code,
        "type": type(exc).__name__
    }
    reason = getattr(exc, "reason", None)
    if reason is not None:
        content["reason"] = reason.value
    return JSONResponse(status_code=exc.status_code, content=content)


# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(coaches.router, prefix="/coaches", tags=["Coaches"])
app.include_router(emails.router, prefix="/api/v1/emails", tags=["Emails"])


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Wellness Service",
        "version": app_config.service_version,
        "description": "Session and role resolution for the NFP Wellness Platform",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "5000")),
        reload=True
    )
