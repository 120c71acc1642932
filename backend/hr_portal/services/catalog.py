from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from hr_portal.schemas.leave import LeaveBalance, LeaveType

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hr_portal.services.hr_api import HrApi


class Catalog(BaseModel):
    """Leave types and the actor's balances, fetched together."""

    leave_types: list[LeaveType] = Field(default_factory=list)
    balances: list[LeaveBalance] = Field(default_factory=list)


async def fetch_catalog(api: HrApi, token: str) -> Catalog:
    """Fetch leave types and balances concurrently."""
    leave_types, balances = await asyncio.gather(
        api.list_leave_types(token),
        api.list_leave_balances(token),
    )
    return Catalog(leave_types=leave_types, balances=balances)


def format_days(days: Decimal) -> str:
    """Render a day count without trailing zeros: 3, 0.5, 1.5."""
    return format(days.normalize(), "f")


def active_leave_types(leave_types: Iterable[LeaveType]) -> list[LeaveType]:
    """Leave types that may be selected for a new request."""
    return [t for t in leave_types if t.is_active]


def balance_for(
    balances: Iterable[LeaveBalance],
    leave_type_id: int,
    year: int | None = None,
) -> LeaveBalance | None:
    """Find the balance for a leave type, preferring the given (default: current) year."""
    year = year if year is not None else date.today().year
    matches = [b for b in balances if b.leave_type_id == leave_type_id]
    for balance in matches:
        if balance.year == year:
            return balance
    return matches[0] if matches else None


def leave_type_label(leave_type_id: int, leave_types: Iterable[LeaveType], embedded: LeaveType | None = None) -> str:
    """Name of a leave type, falling back to its id when it is unknown."""
    if embedded is not None:
        return embedded.name
    for leave_type in leave_types:
        if leave_type.id == leave_type_id:
            return leave_type.name
    return f"Leave type #{leave_type_id}"


def option_label(leave_type: LeaveType, balance: LeaveBalance | None) -> str:
    if balance is None:
        return leave_type.name
    return f"{leave_type.name} ({format_days(balance.remaining_days)} days remaining)"
