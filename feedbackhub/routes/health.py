"""Health check endpoint for monitoring and deployment verification.

This module provides a health check endpoint that verifies the application
is running and can connect to the database.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedbackhub.models.database import get_db
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Health check endpoint.

    Returns:
        dict: Health check status with database connection info

    Raises:
        HTTPException: If database connection fails (503 Service Unavailable)

    Example response:
        {
            "status": "healthy",
            "database": "connected"
        }
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=503,
            detail="Service unavailable - database connection failed"
        )

    logger.debug("Health check passed")
    return {
        "status": "healthy",
        "database": "connected"
    }
