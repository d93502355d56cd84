"""Health check and monitoring endpoints"""

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/timer")
async def get_timer_health(request: Request):
    """
    Report whether the timer engine and its background loops are alive.

    A running timer with no live tick loop is reported as degraded.
    """
    engine = getattr(request.app.state, "timer_engine", None)
    if engine is None:
        return {"status": "unavailable", "engine": False}

    state = engine.get_state()
    ticking = engine.ticker.is_active
    reconciling = engine.reconciler.is_active

    if state.status.value == "running" and not ticking:
        status = "degraded"
    elif not reconciling:
        status = "degraded"
    else:
        status = "healthy"

    return {
        "status": status,
        "engine": True,
        "timer_status": state.status.value,
        "ticking": ticking,
        "reconciling": reconciling,
    }


@router.get("/")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "task-timer-backend",
    }
