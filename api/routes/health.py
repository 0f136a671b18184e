from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api.schemas import HealthResponse
from core.dependencies import get_db_manager
from core.settings import app_settings
from gst.core.database_manager import DatabaseManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    request: Request, db: DatabaseManager | None = Depends(get_db_manager)
):
    orchestrator = getattr(request.app.state, "orchestrator", None)
    content = {
        "status": "healthy",
        "service": app_settings.APP_NAME,
        "version": app_settings.APP_VERSION,
        "queue": orchestrator.queue_status() if orchestrator else None,
    }
    status_code = 200

    if db is not None:
        db_health = await db.health_check()
        if not db_health["healthy"]:
            content["status"] = "unhealthy"
            status_code = 503
        content["database"] = {
            "status": "connected" if db_health["healthy"] else "disconnected",
            "latency_ms": db_health.get("latency_ms"),
            "error": db_health.get("error"),
        }

    return JSONResponse(status_code=status_code, content=content)


@router.get("/ready", tags=["health"])
async def readiness(request: Request):
    ready = getattr(request.app.state, "orchestrator", None) is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"ready": ready},
    )


@router.get("/metrics", tags=["health"], include_in_schema=False)
async def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
