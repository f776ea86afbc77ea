"""Configuration for report generation.

Usage
-----
Create a configuration with defaults:

>>> config = ReporterConfig()
>>> config.workers
5

Or load from environment variables:

>>> import os
>>> os.environ["GRAFANA_REPORTER_TOOLCHAIN"] = "xelatex"
>>> config = ReporterConfig.from_env()
>>> config.toolchain
'xelatex'

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

from .compiler import DEFAULT_TOOLCHAIN, TOOLCHAINS
from .snapshots import DEFAULT_WORKERS

ENV_PREFIX = "GRAFANA_REPORTER_"


@dc.dataclass(frozen=True, slots=True)
class ReporterConfig:
    """Settings shared by every report request.

    Attributes
    ----------
    grafana_url
        Base URL of the Grafana instance.
    templates_dir
        Directory holding named ``<name>.tex`` templates.
    tmp_dir
        Base directory for per-request workspaces.
    workers
        Maximum number of concurrent panel snapshot fetches.
    toolchain
        LaTeX toolchain name, ``pdflatex`` or ``xelatex``.
    database_url
        Optional SQLAlchemy async URL of the writeup store. Writeups are
        unavailable when ``None``.
    writeup_query
        Optional raw SQL overriding the default writeup query.
    grafana_timeout_s
        Per-request timeout for Grafana API calls, in seconds.

    """

    grafana_url: str = "http://localhost:3000"
    templates_dir: Path = Path("templates")
    tmp_dir: Path = Path("tmp")
    workers: int = DEFAULT_WORKERS
    toolchain: str = DEFAULT_TOOLCHAIN
    database_url: str | None = None
    writeup_query: str | None = None
    grafana_timeout_s: int = 30

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _optional(env_var: str) -> str | None:
        raw = os.environ.get(env_var, "").strip()
        return raw or None

    @classmethod
    def from_env(cls) -> ReporterConfig:
        """Create configuration from ``GRAFANA_REPORTER_*`` variables.

        Reads ``GRAFANA_URL``, ``TEMPLATES_DIR``, ``TMP_DIR``, ``WORKERS``,
        ``TOOLCHAIN``, ``DATABASE_URL``, ``WRITEUP_QUERY`` and
        ``TIMEOUT_S``, each with the ``GRAFANA_REPORTER_`` prefix.

        Raises
        ------
        ValueError
            If a numeric setting is not a positive integer or the toolchain
            is unknown.

        """
        defaults = cls()
        toolchain = (
            cls._optional(f"{ENV_PREFIX}TOOLCHAIN") or defaults.toolchain
        ).lower()
        if toolchain not in TOOLCHAINS:
            known = ", ".join(sorted(TOOLCHAINS))
            msg = f"{ENV_PREFIX}TOOLCHAIN must be one of {known}, got: {toolchain!r}"
            raise ValueError(msg)

        templates_dir = cls._optional(f"{ENV_PREFIX}TEMPLATES_DIR")
        tmp_dir = cls._optional(f"{ENV_PREFIX}TMP_DIR")
        return cls(
            grafana_url=(
                cls._optional(f"{ENV_PREFIX}GRAFANA_URL") or defaults.grafana_url
            ),
            templates_dir=(
                Path(templates_dir) if templates_dir else defaults.templates_dir
            ),
            tmp_dir=Path(tmp_dir) if tmp_dir else defaults.tmp_dir,
            workers=cls._parse_positive_int(
                f"{ENV_PREFIX}WORKERS", defaults.workers
            ),
            toolchain=toolchain,
            database_url=cls._optional(f"{ENV_PREFIX}DATABASE_URL"),
            writeup_query=cls._optional(f"{ENV_PREFIX}WRITEUP_QUERY"),
            grafana_timeout_s=cls._parse_positive_int(
                f"{ENV_PREFIX}TIMEOUT_S", defaults.grafana_timeout_s
            ),
        )


__all__ = ["ENV_PREFIX", "ReporterConfig"]
