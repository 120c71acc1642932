# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from hr_portal.models.base import PortalTable, utcnow


class PortalSession(PortalTable, table=True):
    """A signed-in browser session holding the HR API bearer token."""

    __tablename__ = "portal_session"

    token: str = Field(sa_type=sa.Text)
    user_json: dict[str, Any] = Field(sa_type=sa.JSON)
    must_change_password: bool = Field(default=False)
    last_verified_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
    last_seen_at: datetime = Field(
        default_factory=utcnow,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
