"""Tests for the ``hr-portal`` entry point."""

from __future__ import annotations

from typing import Any

import pytest

from hr_portal import main
from hr_portal.config import get_settings


def test_run_serves_app_with_configured_address(monkeypatch: pytest.MonkeyPatch) -> None:
    served: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
    monkeypatch.setattr(main.uvicorn, "run", lambda *args, **kwargs: served.append((args, kwargs)))
    settings = get_settings()
    monkeypatch.setattr(settings, "port", 9123)

    main.run()

    ((args, kwargs),) = served
    assert args == ("hr_portal.main:app",)
    assert kwargs["host"] == settings.host
    assert kwargs["port"] == 9123
    assert kwargs["log_level"] == settings.log_level.lower()
