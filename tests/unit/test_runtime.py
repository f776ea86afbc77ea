"""Unit tests for the grafana_reporter.runtime module."""

from __future__ import annotations

import typing as typ
from http import HTTPStatus
from unittest import mock

import falcon.asgi
import falcon.testing
import pytest

from grafana_reporter import runtime

if typ.TYPE_CHECKING:
    from grafana_reporter.api.app import AppDependencies

_ENV_VARS = (
    "GRAFANA_REPORTER_DATABASE_URL",
    "GRAFANA_REPORTER_TOOLCHAIN",
    "GRAFANA_REPORTER_WORKERS",
    "GRAFANA_REPORTER_HOST",
    "GRAFANA_REPORTER_PORT",
    "GRAFANA_REPORTER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove reporter settings inherited from the outer environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestCreateApp:
    """Tests for the Granian application factory."""

    def test_returns_falcon_app_with_probes(self) -> None:
        """The factory builds an ASGI app exposing the probes."""
        app = runtime.create_app()

        assert isinstance(app, falcon.asgi.App)
        client = falcon.testing.TestClient(app)
        assert client.simulate_get("/health").status_code == HTTPStatus.OK
        assert client.simulate_get("/ready").json == {
            "status": "ready",
            "reports": True,
        }

    def test_invalid_toolchain_fails_fast(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A bad toolchain name stops startup."""
        monkeypatch.setenv("GRAFANA_REPORTER_TOOLCHAIN", "context")

        with pytest.raises(ValueError, match="TOOLCHAIN"):
            runtime.create_app()

    def test_database_url_enables_writeups(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A configured database wires the SQL writeup client."""
        monkeypatch.setenv("GRAFANA_REPORTER_DATABASE_URL", "sqlite+aiosqlite://")
        built: list[object] = []

        from grafana_reporter.api import factory

        original = factory.build_app_dependencies

        def spy(config: object) -> object:
            deps = original(config)  # type: ignore[arg-type]
            built.append(deps)
            return deps

        monkeypatch.setattr(factory, "build_app_dependencies", spy)

        runtime.create_app()

        from grafana_reporter.writeup.client import SqlWriteupClient

        deps = typ.cast("AppDependencies", built[0])
        assert isinstance(deps.writeups, SqlWriteupClient)
        assert deps.engine is not None, "Expected the engine for shutdown disposal."


class TestParsePort:
    """Tests for _parse_port."""

    def test_accepts_valid_port(self) -> None:
        """A port in range is returned as an int."""
        assert runtime._parse_port("8686") == 8686

    @pytest.mark.parametrize("raw", ["0", "65536", "http"])
    def test_rejects_invalid_port(self, raw: str) -> None:
        """Out-of-range or non-numeric ports exit the process."""
        with pytest.raises(SystemExit):
            runtime._parse_port(raw)


def test_main_serves_factory_with_granian(monkeypatch: pytest.MonkeyPatch) -> None:
    """main() configures logging and hands the factory path to Granian."""
    monkeypatch.setenv("GRAFANA_REPORTER_PORT", "9000")
    monkeypatch.setenv("GRAFANA_REPORTER_LOG_LEVEL", "debug")
    configure = mock.Mock(return_value=("DEBUG", False))
    monkeypatch.setattr(runtime, "configure_logging", configure)

    with mock.patch("granian.Granian") as granian_cls:
        runtime.main()

    configure.assert_called_once_with("debug")
    granian_cls.assert_called_once()
    args, kwargs = granian_cls.call_args
    assert args == ("grafana_reporter.runtime:create_app",)
    assert kwargs["port"] == 9000
    assert kwargs["address"] == "0.0.0.0"  # noqa: S104 - asserting the default
    assert kwargs["factory"] is True
    granian_cls.return_value.serve.assert_called_once_with()


def test_server_settings_defaults() -> None:
    """Unset variables give the documented listen address and level."""
    settings = runtime.ServerSettings.from_env()

    assert (settings.host, settings.port, settings.log_level) == (
        "0.0.0.0",  # noqa: S104 - asserting the default
        8686,
        "INFO",
    )
