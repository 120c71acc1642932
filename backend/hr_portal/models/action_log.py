# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from hr_portal.models.base import PortalTable


class PortalActionLog(PortalTable, table=True):
    """Immutable record of every mutation the portal attempted upstream."""

    __tablename__ = "portal_action_log"
    __table_args__ = (sa.Index("ix_action_log_request", "request_id"),)

    session_id: uuid.UUID | None = Field(default=None, index=True)
    actor_id: int | None = None
    action: str = Field(max_length=50)
    request_id: int | None = None
    succeeded: bool
    message: str | None = Field(default=None, sa_type=sa.Text)
