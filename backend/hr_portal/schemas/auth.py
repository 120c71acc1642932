# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from hr_portal.models.enums import UserRole


class UserInfo(BaseModel):
    """User record as returned by the HR API."""

    model_config = ConfigDict(extra="ignore")

    id: int
    employee_id: str | None = None
    email: str
    first_name: str
    last_name: str
    role: UserRole
    department: str | None = None
    position: str | None = None
    hire_date: str | None = None
    manager_id: int | None = None
    must_change_password: bool = False
    created_at: datetime | None = None


class LoginPayload(BaseModel):
    """Request body for opening a portal session."""

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class LoginResult(BaseModel):
    """Upstream login outcome."""

    token: str
    user: UserInfo
    must_change_password: bool = False


class SessionContext(BaseModel):
    """The signed-in actor, injected into every route that needs one."""

    session_id: uuid.UUID
    token: str = Field(repr=False)
    user: UserInfo
    must_change_password: bool = False

    @property
    def is_hr_manager(self) -> bool:
        return self.user.role == UserRole.HR_MANAGER

    @property
    def is_hr_executive(self) -> bool:
        return self.user.role == UserRole.HR_EXECUTIVE

    @property
    def is_employee(self) -> bool:
        return self.user.role == UserRole.EMPLOYEE

    @property
    def is_hr(self) -> bool:
        return self.is_hr_manager or self.is_hr_executive


class SessionResponse(BaseModel):
    """Response schema for session endpoints."""

    session_id: uuid.UUID
    user: UserInfo
    must_change_password: bool
    is_hr: bool
