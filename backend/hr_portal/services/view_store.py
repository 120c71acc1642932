# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from hr_portal.schemas.view import LeaveView


@runtime_checkable
class ViewStore(Protocol):
    """Holds the leave view of every live portal session."""

    def get(self, session_id: uuid.UUID) -> LeaveView:
        """Return the session's view, creating an empty one on first use."""
        ...

    def discard(self, session_id: uuid.UUID) -> None:
        """Forget the session's view."""
        ...


class InMemoryViewStore:
    """Process-local view store. Views vanish on restart and are rebuilt by the next refresh."""

    def __init__(self) -> None:
        self._views: dict[uuid.UUID, LeaveView] = {}

    def get(self, session_id: uuid.UUID) -> LeaveView:
        view = self._views.get(session_id)
        if view is None:
            view = LeaveView()
            self._views[session_id] = view
        return view

    def discard(self, session_id: uuid.UUID) -> None:
        self._views.pop(session_id, None)


_view_store: ViewStore = InMemoryViewStore()


def get_view_store() -> ViewStore:
    """FastAPI dependency for the view store."""
    return _view_store


def set_view_store(store: ViewStore) -> None:
    """Override the store (for testing or production wiring)."""
    global _view_store
    _view_store = store
