"""Health check endpoint"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session
from kbresponder.database.session import get_db
from kbresponder.schemas.response import HealthResponse
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Health check endpoint
    Checks connectivity to:
    - PostgreSQL database
    - Completion model configuration (optional)
    """
    health_status = {
        "status": "healthy",
        "dependencies": {}
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        health_status["dependencies"]["database"] = "connected"
    except Exception as e:
        health_status["dependencies"]["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"
        logger.error(f"Database health check failed: {str(e)}")

    # Check completion model (optional - replies are skipped when missing)
    generator = getattr(request.app.state, "generator", None)
    if generator is not None and generator.is_available:
        health_status["dependencies"]["llm"] = "configured"
    else:
        health_status["dependencies"]["llm"] = "not configured"

    # Set HTTP status code
    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(**health_status)
