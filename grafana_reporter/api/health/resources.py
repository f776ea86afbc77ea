"""Liveness and readiness probes.

Both resources are stateless and are registered whether or not the report
endpoints are configured.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe reporting whether report routes are mounted.

    Parameters
    ----------
    reports_enabled
        Whether the report endpoints were registered.

    """

    def __init__(self, *, reports_enabled: bool = False) -> None:
        """Record whether the app can serve reports."""
        self._reports_enabled = reports_enabled

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        resp.media = {"status": "ready", "reports": self._reports_enabled}
        resp.status = HTTPStatus.OK
