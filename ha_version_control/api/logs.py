"""Logs API endpoints"""
from fastapi import APIRouter, Query
from typing import Optional
import logging

from ha_version_control.utils.logger import clear_logs, get_logs

router = APIRouter()
logger = logging.getLogger('ha_version_control')


@router.get("/")
async def get_service_logs(
    limit: int = Query(100, ge=1, description="Number of log entries to return"),
    level: Optional[str] = Query(None, description="Filter by level: DEBUG, INFO, WARNING, ERROR, CRITICAL")
):
    """
    Get service logs

    **Examples:**
    - `/api/logs/` - Last 100 log entries
    - `/api/logs/?level=CRITICAL` - Only failed rollbacks and other critical events
    """
    logs = get_logs(limit=limit, level=level)
    return {
        "success": True,
        "count": len(logs),
        "logs": logs
    }


@router.delete("/clear")
async def clear_service_logs():
    """Clear the in-memory log buffer"""
    clear_logs()
    logger.info("Logs cleared")
    return {
        "success": True,
        "message": "Logs cleared"
    }
