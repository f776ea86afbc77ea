"""Application factory for the grafana-reporter Falcon ASGI application.

Usage
-----
Create a health-only app::

    app = create_app()

Create a full app with the report endpoints::

    from grafana_reporter.api.app import AppDependencies, create_app
    from grafana_reporter.report import ReporterConfig, select_toolchain

    config = ReporterConfig.from_env()
    deps = AppDependencies(
        config=config,
        toolchain=select_toolchain(config.toolchain),
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from grafana_reporter.api.errors import (
    InvalidInputError,
    handle_invalid_input,
    handle_report_error,
)
from grafana_reporter.api.health.resources import HealthResource, ReadyResource
from grafana_reporter.grafana.client import GrafanaV4Client, GrafanaV5Client
from grafana_reporter.logging import get_logger, log_info
from grafana_reporter.report.errors import ReportError

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from grafana_reporter.api.resources import GrafanaFactory
    from grafana_reporter.report.compiler import Toolchain
    from grafana_reporter.report.config import ReporterConfig
    from grafana_reporter.writeup.client import WriteupClient

__all__ = [
    "V4_REPORT_ROUTE",
    "V5_REPORT_ROUTE",
    "AppDependencies",
    "EngineDisposal",
    "create_app",
]

V4_REPORT_ROUTE = "/api/report/{dash_id}"
V5_REPORT_ROUTE = "/api/v5/report/{dash_id}"

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    config
        Reporter settings.
    toolchain
        LaTeX toolchain selected once at startup.
    writeups
        Optional writeup store.
    grafana_v4
        Factory for clients of the v4 route.
    grafana_v5
        Factory for clients of the v5 route.
    engine
        Engine behind the writeup store, disposed on server shutdown.

    """

    config: ReporterConfig
    toolchain: Toolchain
    writeups: WriteupClient | None = None
    grafana_v4: GrafanaFactory = GrafanaV4Client
    grafana_v5: GrafanaFactory = GrafanaV5Client
    engine: AsyncEngine | None = None


class EngineDisposal:
    """Release the writeup engine's connection pool on server shutdown."""

    def __init__(self, engine: AsyncEngine) -> None:
        """Bind the engine to dispose."""
        self._engine = engine

    async def process_shutdown(
        self, scope: dict[str, typ.Any], event: dict[str, typ.Any]
    ) -> None:
        """Dispose the engine when the ASGI lifespan ends."""
        await self._engine.dispose()
        log_info(logger, "Writeup database engine disposed")


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    When *dependencies* is given the two report routes are registered;
    ``/health`` and ``/ready`` are always available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    middleware: list[object] = []
    if dependencies is not None and dependencies.engine is not None:
        middleware.append(EngineDisposal(dependencies.engine))
    app = falcon.asgi.App(middleware=middleware)

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(reports_enabled=dependencies is not None))

    if dependencies is not None:
        from grafana_reporter.api.resources import (
            ReportResource,
            ReportResourceDependencies,
        )

        shared = ReportResourceDependencies(
            config=dependencies.config,
            toolchain=dependencies.toolchain,
            writeups=dependencies.writeups,
        )
        app.add_route(
            V4_REPORT_ROUTE,
            ReportResource(shared, grafana_factory=dependencies.grafana_v4),
        )
        app.add_route(
            V5_REPORT_ROUTE,
            ReportResource(shared, grafana_factory=dependencies.grafana_v5),
        )

    app.add_error_handler(ReportError, handle_report_error)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

    return app
