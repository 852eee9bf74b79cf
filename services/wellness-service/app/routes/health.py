"""
Health Check Routes
Service health monitoring endpoints
"""

from fastapi import APIRouter
from datetime import datetime, timezone
import logging

from app.utils.config import get_app_config
from app.utils.smtp_client import get_smtp_client
from app.utils.supabase_client import get_supabase_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
async def health_check():
    """Basic health check"""
    app_config = get_app_config()
    return {
        "status": "healthy",
        "service": app_config.service_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": app_config.service_version
    }


@router.get("/detailed")
async def detailed_health_check():
    """Detailed health check including SMTP connectivity and Supabase configuration"""
    app_config = get_app_config()
    health_status = {
        "status": "healthy",
        "service": app_config.service_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": app_config.service_version,
        "components": {}
    }

    smtp_result = await get_smtp_client().test_connection()
    if smtp_result.get("success"):
        health_status["components"]["smtp"] = {"status": "healthy", **smtp_result}
    else:
        logger.error(f"SMTP health check failed: {smtp_result.get('error')}")
        health_status["components"]["smtp"] = {"status": "unhealthy", **smtp_result}
        health_status["status"] = "degraded"

    if get_supabase_client().is_available():
        health_status["components"]["supabase"] = {"status": "healthy"}
    else:
        health_status["components"]["supabase"] = {
            "status": "unhealthy",
            "error": "Supabase client not configured"
        }
        health_status["status"] = "degraded"

    return health_status
