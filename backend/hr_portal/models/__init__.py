from sqlmodel import SQLModel

from hr_portal.models.action_log import PortalActionLog
from hr_portal.models.base import PortalTable
from hr_portal.models.enums import (
    HR_ROLES,
    ApproverRole,
    HalfDayPeriod,
    LeaveAction,
    LeaveStatus,
    LeaveTab,
    PortalAction,
    UserRole,
)
from hr_portal.models.session import PortalSession

__all__ = [
    "HR_ROLES",
    "ApproverRole",
    "HalfDayPeriod",
    "LeaveAction",
    "LeaveStatus",
    "LeaveTab",
    "PortalAction",
    "PortalActionLog",
    "PortalSession",
    "PortalTable",
    "SQLModel",
    "UserRole",
]
