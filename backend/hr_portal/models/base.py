from __future__ import annotations

import uuid
from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware current time, used for every timestamp the portal stores."""
    return datetime.now(UTC)


class PortalTable(SQLModel):
    """Columns shared by the portal's bookkeeping tables.

    Both tables are append-or-delete: rows are never updated in place except
    for a session's cached user, so a creation time is the only timestamp.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, sa_type=sa.Uuid)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
