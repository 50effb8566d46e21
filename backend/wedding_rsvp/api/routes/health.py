from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from wedding_rsvp.core.config import settings
from wedding_rsvp.db.session import get_db
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database reachability plus the running service's identity"""
    service = {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "unhealthy", "database": "unreachable", "error": str(e), **service}

    return {"status": "healthy", "database": "connected", **service}
