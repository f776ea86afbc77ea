"""Grafana API client errors."""

from __future__ import annotations


class GrafanaError(RuntimeError):
    """Base class for Grafana client failures."""


class GrafanaAPIError(GrafanaError):
    """Raised when Grafana returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, url: str) -> GrafanaAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"Grafana HTTP {status_code} for {url}", status_code=status_code)

    @classmethod
    def transport_error(cls, url: str, exc: Exception) -> GrafanaAPIError:
        """Return an error for connection failures and timeouts."""
        return cls(f"Grafana request to {url} failed: {exc}")


class GrafanaResponseShapeError(GrafanaError):
    """Raised when a Grafana response is missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GrafanaResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"Grafana response missing expected field: {field}")

    @classmethod
    def invalid(cls, field: str, detail: str) -> GrafanaResponseShapeError:
        """Return an error for a field with an unexpected shape."""
        return cls(f"Grafana response field {field} is invalid: {detail}")


class GrafanaConfigError(GrafanaError):
    """Raised when Grafana client configuration is invalid."""

    @classmethod
    def empty_base_url(cls) -> GrafanaConfigError:
        """Return an error when no Grafana URL is configured."""
        return cls("Grafana base URL must be non-empty")
