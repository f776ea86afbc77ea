"""Build application dependencies from a :class:`ReporterConfig`.

Usage
-----
>>> from grafana_reporter.api.factory import build_app_dependencies
>>> deps = build_app_dependencies(ReporterConfig.from_env())

"""

from __future__ import annotations

import typing as typ

from grafana_reporter.api.app import AppDependencies
from grafana_reporter.logging import get_logger, log_info
from grafana_reporter.report.compiler import select_toolchain

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from grafana_reporter.report.config import ReporterConfig
    from grafana_reporter.writeup.client import WriteupClient

__all__ = ["build_app_dependencies"]

logger = get_logger(__name__)


def build_app_dependencies(config: ReporterConfig) -> AppDependencies:
    """Select the toolchain and, when configured, connect the writeup store.

    Raises
    ------
    ValueError
        If ``config.toolchain`` is not a known toolchain.

    """
    toolchain = select_toolchain(config.toolchain)

    writeups: WriteupClient | None = None
    engine: AsyncEngine | None = None
    if config.database_url is not None:
        from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

        from grafana_reporter.writeup.client import SqlWriteupClient

        engine = create_async_engine(config.database_url)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        writeups = SqlWriteupClient(session_factory, query=config.writeup_query)

    log_info(
        logger,
        "Reporter configured: grafana=%s toolchain=%s workers=%d writeups=%s",
        config.grafana_url,
        toolchain.name,
        config.workers,
        "enabled" if writeups is not None else "disabled",
    )
    return AppDependencies(
        config=config, toolchain=toolchain, writeups=writeups, engine=engine
    )
