"""Grafana reporter HTTP API layer.

This package provides the Falcon ASGI application serving the report
endpoints and the health probes.

Usage
-----
Create and run the application::

    from grafana_reporter.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # report endpoints mounted

"""

from grafana_reporter.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
