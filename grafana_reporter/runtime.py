"""grafana-reporter runtime entrypoint.

``create_app`` is the Granian application factory: it reads
:class:`~grafana_reporter.report.config.ReporterConfig` from the
environment, selects the LaTeX toolchain once and connects the optional
writeup store. ``main`` reads :class:`ServerSettings` and serves the
factory.

Server settings:

- ``GRAFANA_REPORTER_HOST``: Bind address (default ``0.0.0.0``)
- ``GRAFANA_REPORTER_PORT``: Listen port (default ``8686``)
- ``GRAFANA_REPORTER_LOG_LEVEL``: Log level (default ``INFO``)

Run the service with ``grafana-reporter`` or
``python -m grafana_reporter.runtime``.
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from grafana_reporter.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["APP_FACTORY", "ServerSettings", "create_app", "main"]

logger = get_logger(__name__)

APP_FACTORY = "grafana_reporter.runtime:create_app"

_PORT_RANGE = range(1, 65536)


def _parse_port(port_str: str) -> int:
    """Return ``port_str`` as a TCP port number.

    Raises
    ------
    SystemExit
        If the value is not an integer between 1 and 65535.

    """
    try:
        port = int(port_str)
    except ValueError:
        port = 0
    if port not in _PORT_RANGE:
        log_error(
            logger,
            "Invalid GRAFANA_REPORTER_PORT value: %r (must be %d-%d)",
            port_str,
            _PORT_RANGE.start,
            _PORT_RANGE.stop - 1,
        )
        raise SystemExit(1)
    return port


@dc.dataclass(frozen=True, slots=True)
class ServerSettings:
    """Where the HTTP server listens and how verbosely it logs."""

    host: str = "0.0.0.0"  # noqa: S104 - containers publish the port explicitly
    port: int = 8686
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ServerSettings:
        """Read the ``GRAFANA_REPORTER_HOST``/``PORT``/``LOG_LEVEL`` variables.

        Raises
        ------
        SystemExit
            If the port is invalid.

        """
        defaults = cls()
        raw_port = os.environ.get("GRAFANA_REPORTER_PORT", "").strip()
        return cls(
            host=os.environ.get("GRAFANA_REPORTER_HOST", "").strip() or defaults.host,
            port=_parse_port(raw_port) if raw_port else defaults.port,
            log_level=os.environ.get("GRAFANA_REPORTER_LOG_LEVEL", defaults.log_level),
        )


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from environment configuration.

    Raises
    ------
    ValueError
        If the environment holds an invalid reporter setting.

    """
    from grafana_reporter.api.app import create_app as _create_api_app
    from grafana_reporter.api.factory import build_app_dependencies
    from grafana_reporter.report.config import ReporterConfig

    config = ReporterConfig.from_env()
    return _create_api_app(build_app_dependencies(config))


def main() -> None:
    """Configure logging and serve :data:`APP_FACTORY` with Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = ServerSettings.from_env()
    level, invalid = configure_logging(settings.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid GRAFANA_REPORTER_LOG_LEVEL %r, falling back to %s",
            settings.log_level,
            level,
        )
    log_info(
        logger,
        "Starting grafana-reporter on %s:%d (log_level=%s)",
        settings.host,
        settings.port,
        level,
    )

    Granian(
        APP_FACTORY,
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
    ).serve()


if __name__ == "__main__":
    main()
