"""Unit tests for the ipsource CLI."""

import sys

import pytest
import yaml
from typer.testing import CliRunner

from ipsource.cli import app

runner = CliRunner()

PRINT_BOTH = "print('8.8.8.8,2001:4860:4860::8888')"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("IPSOURCE_SOURCE__COMMAND", "IPSOURCE_LOGGING__LEVEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_file(tmp_path):
    def _write(data):
        path = tmp_path / "ipsource.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


def _lines(output):
    return [line for line in output.splitlines() if line]


class TestExec:
    def test_prints_addresses(self):
        result = runner.invoke(app, ["exec", "--", sys.executable, "-c", PRINT_BOTH])

        assert result.exit_code == 0
        assert "8.8.8.8" in _lines(result.stdout)
        assert "2001:4860:4860::8888" in _lines(result.stdout)

    def test_no_ipv6(self):
        result = runner.invoke(
            app, ["exec", "--no-ipv6", "--", sys.executable, "-c", PRINT_BOTH]
        )

        assert result.exit_code == 0
        assert "8.8.8.8" in _lines(result.stdout)
        assert "2001:4860:4860::8888" not in _lines(result.stdout)

    def test_var_placeholder(self):
        result = runner.invoke(
            app,
            [
                "exec",
                "--var",
                "addr=1.1.1.1",
                "--",
                sys.executable,
                "-c",
                "import sys; print(sys.argv[1])",
                "{addr}",
            ],
        )

        assert result.exit_code == 0
        assert "1.1.1.1" in _lines(result.stdout)

    def test_bad_var(self):
        result = runner.invoke(app, ["exec", "--var", "novalue", "--", sys.executable])
        assert result.exit_code == 2

    def test_failing_command(self):
        result = runner.invoke(
            app, ["exec", "--", sys.executable, "-c", "import sys; sys.exit(4)"]
        )

        assert result.exit_code == 1
        assert "exited with: 4" in result.output

    def test_missing_program(self):
        result = runner.invoke(app, ["exec", "nonexistent_ipsource_command_xyz"])

        assert result.exit_code == 1
        assert "could not be started" in result.output

    def test_empty_program(self):
        result = runner.invoke(app, ["exec", ""])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Error: invalid command" in result.output

    def test_timeout(self):
        result = runner.invoke(
            app,
            ["exec", "--timeout", "0.5", "--", sys.executable, "-c", "import time; time.sleep(30)"],
        )

        assert result.exit_code == 1
        assert "timed out" in result.output


class TestLookup:
    def test_from_config(self, config_file):
        path = config_file(
            {
                "source": {"command": sys.executable, "args": ["-c", PRINT_BOTH]},
                "ip_settings": {"ipv6": False},
                "logging": {"level": "WARNING"},
            }
        )

        result = runner.invoke(app, ["lookup", "--config", str(path)])

        assert result.exit_code == 0
        assert _lines(result.stdout) == ["8.8.8.8"]

    def test_flag_overrides_config(self, config_file):
        path = config_file(
            {
                "source": {"command": sys.executable, "args": ["-c", PRINT_BOTH]},
                "ip_settings": {"ipv6": False},
                "logging": {"level": "WARNING"},
            }
        )

        result = runner.invoke(app, ["lookup", "-c", str(path), "--ipv6", "--no-ipv4"])

        assert result.exit_code == 0
        assert _lines(result.stdout) == ["2001:4860:4860::8888"]

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(app, ["lookup", "--config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_no_command_configured(self, config_file):
        path = config_file({"logging": {"level": "WARNING"}})

        result = runner.invoke(app, ["lookup", "--config", str(path)])

        assert result.exit_code == 1
        assert "No command configured" in result.output

    def test_invalid_config(self, config_file):
        path = config_file({"ip_settings": {"ip_ranges": ["not-a-range"]}})

        result = runner.invoke(app, ["lookup", "--config", str(path)])

        assert result.exit_code == 1
        assert "Error loading config" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "lookup" in result.output
    assert "exec" in result.output
