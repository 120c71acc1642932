from fastapi import APIRouter

from hr_portal.api.leaves import router as leaves_router
from hr_portal.api.session import router as session_router

api_router = APIRouter()
api_router.include_router(session_router)
api_router.include_router(leaves_router)
