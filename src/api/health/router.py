"""Health check endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.api.core.dependencies import AsyncSessionDep, RedisDep
from src.modules.health.service import HealthService
from src.utils.settings.app import AppSettings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(db: AsyncSessionDep, redis_client: RedisDep) -> JSONResponse:
    """Database and Redis connectivity. Returns 503 when the database is down."""
    health = await HealthService(db, redis_client).run_all_checks()
    return JSONResponse(
        status_code=503 if health.status == "unhealthy" else 200,
        content={
            "status": health.status,
            "timestamp": health.timestamp,
            "services": {
                name: {
                    "status": result.status,
                    "connected": result.connected,
                    "error": result.error,
                }
                for name, result in health.services.items()
            },
        },
    )


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "agent-marketplace-api"}


root_router = APIRouter(tags=["root"])


@root_router.get("/")
async def root():
    return {
        "service": "agent-marketplace-api",
        "version": AppSettings().API_VERSION,
        "docs": "/docs",
    }
