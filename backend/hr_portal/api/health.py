import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from hr_portal.api.deps import HrApiDep
from hr_portal.config import get_settings
from hr_portal.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok", "degraded", "error"]
    version: str
    environment: str
    session_store: bool
    hr_api: bool


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep, api: HrApiDep) -> HealthResponse:
    """Report whether the session store and the HR API are reachable.

    One failing dependency is ``degraded``; both failing is ``error``.
    """
    settings = get_settings()

    try:
        await session.execute(text("SELECT 1"))
        session_store = True
    except Exception:
        logger.exception("Health check: session store connectivity failed")
        session_store = False

    hr_api = await api.ping()

    status: Literal["ok", "degraded", "error"] = "ok"
    if not (session_store and hr_api):
        status = "degraded" if (session_store or hr_api) else "error"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.environment,
        session_store=session_store,
        hr_api=hr_api,
    )
