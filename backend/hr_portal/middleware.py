from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from hr_portal.config import Settings


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Allow the dashboard origins to call the portal and read the session header.

    The session id travels in a custom header rather than a cookie, so it must
    be both accepted on requests and exposed on the login response.
    """
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", settings.session_header],
        expose_headers=[settings.session_header],
    )
