"""HTTP-facing exceptions and Falcon error handlers.

Usage
-----
Register error handlers on the Falcon app::

    from grafana_reporter.api.errors import (
        InvalidInputError,
        handle_invalid_input,
        handle_report_error,
    )

    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(ReportError, handle_report_error)

"""

from __future__ import annotations

import typing as typ

import falcon

from grafana_reporter.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from grafana_reporter.report.errors import ReportError

__all__ = [
    "InvalidInputError",
    "handle_invalid_input",
    "handle_report_error",
]

logger = get_logger(__name__)


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the query parameter that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def _describe(ex: BaseException) -> str:
    """Join the messages along an exception's ``__cause__`` chain."""
    parts: list[str] = []
    current: BaseException | None = ex
    while current is not None:
        text = str(current)
        if text and text not in parts:
            parts.append(text)
        current = current.__cause__
    return "; caused by: ".join(parts)


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_report_error(
    req: Request,
    resp: Response,
    ex: ReportError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a failed report to an HTTP 500 JSON response.

    The description carries the whole cause chain so a caller can see, for
    example, the compiler output or the Grafana status that sank the report.
    """
    description = _describe(ex)
    log_exception(
        logger, f"Error generating report for {req.path}: {description}", ex
    )
    resp.status = falcon.HTTP_500
    resp.media = {
        "title": "Report generation failed",
        "error": type(ex).__name__,
        "description": description,
    }
