from fastapi import APIRouter

from app.api.v1.automation import router as automation_router
from app.api.v1.scans import router as scans_router
from app.api.v1.tracking import router as tracking_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(tracking_router)
api_v1_router.include_router(scans_router)
api_v1_router.include_router(automation_router)
