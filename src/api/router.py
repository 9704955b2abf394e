from fastapi import APIRouter

from src.api.admin.router import router as admin_router
from src.api.agents.router import router as agents_router
from src.api.credits.router import router as credits_router
from src.api.earnings.router import router as earnings_router
from src.api.executions.router import router as executions_router
from src.api.health.router import router as health_router, root_router
from src.api.stripe.router import router as stripe_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Include domain routers
v1_router.include_router(credits_router)
v1_router.include_router(agents_router)
v1_router.include_router(executions_router)
v1_router.include_router(earnings_router)
v1_router.include_router(admin_router)

# Main API router
api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(health_router)
api_router.include_router(stripe_router)
api_router.include_router(v1_router)
