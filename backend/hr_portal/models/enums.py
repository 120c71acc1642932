from __future__ import annotations

import enum


class UserRole(enum.StrEnum):
    """Role of a portal user as reported by the HR API."""

    HR_MANAGER = "hr_manager"
    HR_EXECUTIVE = "hr_executive"
    EMPLOYEE = "employee"


HR_ROLES = frozenset({UserRole.HR_MANAGER, UserRole.HR_EXECUTIVE})


class LeaveStatus(enum.StrEnum):
    """Approval state of a leave request."""

    PENDING = "pending"
    TEAM_LEADER_APPROVED = "team_leader_approved"
    HR_APPROVED = "hr_approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (LeaveStatus.HR_APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED)


_STATUS_LABELS = {
    LeaveStatus.PENDING: "Pending",
    LeaveStatus.TEAM_LEADER_APPROVED: "Team Leader Approved",
    LeaveStatus.HR_APPROVED: "Approved",
    LeaveStatus.REJECTED: "Rejected",
    LeaveStatus.CANCELLED: "Cancelled",
}


class LeaveAction(enum.StrEnum):
    """Transition that can be requested against a leave request."""

    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class ApproverRole(enum.StrEnum):
    """Capacity in which an approval is issued."""

    TEAM_LEADER = "team_leader"
    HR = "hr"


class HalfDayPeriod(enum.StrEnum):
    """Which half of the day a half-day request covers."""

    MORNING = "morning"
    EVENING = "evening"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class LeaveTab(enum.StrEnum):
    """Section of the leave view currently displayed."""

    BALANCE = "balance"
    REQUEST = "request"
    HISTORY = "history"
    APPROVALS = "approvals"


class PortalAction(enum.StrEnum):
    """Action recorded in the portal action log."""

    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
