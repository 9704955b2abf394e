import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

import redis.asyncio as redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    service: str
    status: Literal["healthy", "unhealthy"]
    connected: bool
    details: dict = field(default_factory=dict)
    error: str | None = None


@dataclass
class OverallHealthStatus:
    """Overall health status with individual service results."""

    status: Literal["healthy", "degraded", "unhealthy"]
    services: dict[str, HealthCheckResult]
    timestamp: str


class HealthService:
    """Liveness checks for the database and Redis."""

    def __init__(self, db: AsyncSession, redis_client: redis.Redis):
        self.db = db
        self.redis = redis_client

    async def check_database_health(self) -> HealthCheckResult:
        try:
            result = await self.db.execute(text("SELECT 1"))
            return HealthCheckResult(
                service="database",
                status="healthy",
                connected=True,
                details={"test_query_result": result.scalar()},
            )
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return HealthCheckResult(
                service="database", status="unhealthy", connected=False, error=str(e)
            )

    async def check_redis_health(self) -> HealthCheckResult:
        try:
            await self.redis.ping()
            return HealthCheckResult(service="redis", status="healthy", connected=True)
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return HealthCheckResult(
                service="redis", status="unhealthy", connected=False, error=str(e)
            )

    async def run_all_checks(self) -> OverallHealthStatus:
        database, redis_result = await asyncio.gather(
            self.check_database_health(), self.check_redis_health()
        )

        # Redis only backs rate limiting, which fails open
        if database.status == "unhealthy":
            overall: Literal["healthy", "degraded", "unhealthy"] = "unhealthy"
        elif redis_result.status == "unhealthy":
            overall = "degraded"
        else:
            overall = "healthy"

        return OverallHealthStatus(
            status=overall,
            services={"database": database, "redis": redis_result},
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
