"""
@file: health.py
@description:
Provides a simple health check endpoint to verify that the server
is running and responding.

@notes:
- Declared before the file routes so that "/health" is never read as a file id.
"""

from fastapi import APIRouter

from filevault.core.logger import setup_logger

# Create a component-specific logger
logger = setup_logger("filevault.api.health")

router = APIRouter()


@router.get("/health", tags=["Health"])
def health_check():
    """
    Health Check Endpoint

    Returns:
        dict: A dictionary containing status and message.
    """
    logger.debug("Health check requested")
    return {
        "status": "OK",
        "message": "Health check successful"
    }
