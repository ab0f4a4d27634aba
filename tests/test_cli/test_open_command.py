"""CLI tests for ``popauth open``."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from popauth.app import app, register_commands
from popauth.exceptions import MonitorTimeoutError, SurfaceOpenError, UserCancelledError

runner = CliRunner()

AUTHORIZE_URL = (
    "https://login.example.com/authorize?client_id=cli&response_mode=fragment"
    "&redirect_uri={redirect_uri}"
)


@pytest.fixture(autouse=True)
def _commands(isolated_config):
    register_commands()
    with patch("popauth.surface.loopback.webbrowser.open", return_value=True):
        yield


def _mock_run(**kwargs):
    return patch("popauth.flow.PopupFlow.run", new_callable=AsyncMock, **kwargs)


class TestOpenSuccess:
    def test_prints_response_parameters_as_json(self) -> None:
        with _mock_run(return_value="#code=abc&state=xyz"):
            result = runner.invoke(app, ["--quiet", "--json", "open", AUTHORIZE_URL])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"code": "abc", "state": "xyz"}

    def test_raw_prints_fragment(self) -> None:
        with _mock_run(return_value="#code=abc&state=xyz"):
            result = runner.invoke(app, ["--quiet", "open", AUTHORIZE_URL, "--raw"])

        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == "#code=abc&state=xyz"

    def test_redirect_placeholder_is_replaced(self) -> None:
        with _mock_run(return_value="#code=abc") as mock_run:
            runner.invoke(app, ["--quiet", "open", AUTHORIZE_URL, "--name", "popauth.popup.cli"])

        target, name = mock_run.call_args.args
        assert "{redirect_uri}" not in target
        assert "redirect_uri=http%3A%2F%2F127.0.0.1%3A" in target
        assert name == "popauth.popup.cli"

    def test_missing_placeholder_warns(self) -> None:
        with _mock_run(return_value="#code=abc"):
            result = runner.invoke(
                app, ["--no-color", "open", "https://login.example.com/authorize"]
            )

        assert result.exit_code == 0
        assert "placeholder" in result.output

    def test_timeout_flag_reaches_settings(self) -> None:
        with patch("popauth.flow.PopupFlow.__init__", return_value=None) as mock_init, _mock_run(
            return_value="#code=abc"
        ):
            runner.invoke(app, ["--quiet", "open", AUTHORIZE_URL, "--timeout-ms", "90000"])

        settings = mock_init.call_args.args[1]
        assert settings.popup_timeout_ms == 90000


class TestOpenFailures:
    def test_empty_url_is_invalid_usage(self) -> None:
        result = runner.invoke(app, ["--no-color", "open", ""])

        assert result.exit_code == 2
        assert "empty" in result.output.lower()

    def test_cancelled(self) -> None:
        with _mock_run(side_effect=UserCancelledError()):
            result = runner.invoke(app, ["--no-color", "open", AUTHORIZE_URL])

        assert result.exit_code == 3
        assert "cancelled" in result.output

    def test_timeout_suggests_longer_budget(self) -> None:
        with _mock_run(side_effect=MonitorTimeoutError()):
            result = runner.invoke(app, ["--no-color", "open", AUTHORIZE_URL])

        assert result.exit_code == 4
        assert "--timeout-ms" in result.output

    def test_surface_error(self) -> None:
        with _mock_run(side_effect=SurfaceOpenError()):
            result = runner.invoke(app, ["--no-color", "open", AUTHORIZE_URL])

        assert result.exit_code == 5

    def test_authorization_error_response(self) -> None:
        with _mock_run(return_value="#error=access_denied&error_description=User%20declined"):
            result = runner.invoke(app, ["--no-color", "--json", "open", AUTHORIZE_URL])

        assert result.exit_code == 3
        assert "access_denied" in result.output
        assert "User declined" in result.output

    def test_invalid_timeout_override(self) -> None:
        result = runner.invoke(app, ["--no-color", "open", AUTHORIZE_URL, "--timeout-ms", "0"])

        assert result.exit_code == 1
        assert "Invalid settings" in result.output
