"""
Health check and status endpoints
"""
from fastapi import APIRouter, Depends
from datetime import datetime
from sqlalchemy import text
from sqlalchemy.orm import Session

from storefront.config import get_settings
from storefront.models.base import get_db
from storefront import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status(db: Session = Depends(get_db)):
    """Get system status"""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        database = f"error: {type(e).__name__}"
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "database": database,
        "timestamp": datetime.utcnow().isoformat()
    }
