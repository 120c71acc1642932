from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

from hr_portal.schemas.leave import LeaveBalance, LeaveType
from hr_portal.services.catalog import (
    active_leave_types,
    balance_for,
    fetch_catalog,
    format_days,
    leave_type_label,
    option_label,
)

ANNUAL = LeaveType(id=1, name="Annual")
SICK = LeaveType(id=2, name="Sick")
RETIRED = LeaveType(id=3, name="Sabbatical", is_active=False)


def _balance(leave_type_id: int, remaining: str, year: int | None = None) -> LeaveBalance:
    return LeaveBalance(
        id=leave_type_id * 100 + (year or 0) % 100,
        leave_type_id=leave_type_id,
        total_days=Decimal(10),
        used_days=Decimal(10) - Decimal(remaining),
        remaining_days=Decimal(remaining),
        year=year or date.today().year,
    )


class _RendezvousApi:
    """Each list call waits for the other one to start."""

    def __init__(self) -> None:
        self.types_started = asyncio.Event()
        self.balances_started = asyncio.Event()

    async def list_leave_types(self, token: str) -> list[LeaveType]:
        self.types_started.set()
        await self.balances_started.wait()
        return [ANNUAL]

    async def list_leave_balances(self, token: str) -> list[LeaveBalance]:
        self.balances_started.set()
        await self.types_started.wait()
        return [_balance(1, "4")]


async def test_fetch_catalog_runs_both_reads_concurrently() -> None:
    catalog = await asyncio.wait_for(fetch_catalog(_RendezvousApi(), "t"), timeout=1)  # type: ignore[arg-type]
    assert catalog.leave_types == [ANNUAL]
    assert catalog.balances[0].remaining_days == Decimal(4)


def test_active_leave_types_hides_inactive() -> None:
    assert active_leave_types([ANNUAL, RETIRED, SICK]) == [ANNUAL, SICK]


def test_balance_for_prefers_current_year() -> None:
    this_year = date.today().year
    old = _balance(1, "1", year=this_year - 1)
    current = _balance(1, "7", year=this_year)
    assert balance_for([old, current], 1) is current
    assert balance_for([old, current], 1, year=this_year - 1) is old


def test_balance_for_falls_back_to_any_year() -> None:
    old = _balance(1, "1", year=2001)
    assert balance_for([old], 1) is old
    assert balance_for([old], 2) is None


def test_leave_type_label_prefers_embedded_type() -> None:
    assert leave_type_label(1, [ANNUAL], embedded=LeaveType(id=1, name="Annual (renamed)")) == "Annual (renamed)"
    assert leave_type_label(2, [ANNUAL, SICK]) == "Sick"
    assert leave_type_label(9, [ANNUAL]) == "Leave type #9"


def test_option_label_shows_remaining_days() -> None:
    assert option_label(ANNUAL, _balance(1, "2.50")) == "Annual (2.5 days remaining)"
    assert option_label(SICK, None) == "Sick"


def test_format_days_drops_trailing_zeros() -> None:
    assert format_days(Decimal("3.00")) == "3"
    assert format_days(Decimal("0.50")) == "0.5"
    assert format_days(Decimal("10")) == "10"
