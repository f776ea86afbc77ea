"""Grafana API access: dashboard metadata and panel snapshots."""

from __future__ import annotations

from .client import (
    GrafanaClient,
    GrafanaClientConfig,
    GrafanaV4Client,
    GrafanaV5Client,
    variables_from_query,
)
from .errors import (
    GrafanaAPIError,
    GrafanaConfigError,
    GrafanaError,
    GrafanaResponseShapeError,
)
from .models import Dashboard, GridPos, Panel, TimeRange

__all__ = [
    "Dashboard",
    "GrafanaAPIError",
    "GrafanaClient",
    "GrafanaClientConfig",
    "GrafanaConfigError",
    "GrafanaError",
    "GrafanaResponseShapeError",
    "GrafanaV4Client",
    "GrafanaV5Client",
    "GridPos",
    "Panel",
    "TimeRange",
    "variables_from_query",
]
