"""Unit tests for ipsource.core.exceptions module.

Tests the exception hierarchy:
- IPSourceError (base)
- ConfigurationError
- SpawnError / ExecutionError / CommandTimeoutError
- ParseError
- SourceNotFoundError
"""

import pytest

from ipsource.core.exceptions import (
    CommandError,
    CommandTimeoutError,
    ConfigurationError,
    ExecutionError,
    IPSourceError,
    ParseError,
    SourceNotFoundError,
    SpawnError,
)


class TestIPSourceError:
    """Tests for the base IPSourceError exception."""

    def test_inherits_from_exception(self):
        assert issubclass(IPSourceError, Exception)

    def test_has_meaningful_default_message(self):
        error = IPSourceError()
        assert "error" in str(error).lower()

    def test_accepts_custom_message(self):
        error = IPSourceError("Custom message")
        assert str(error) == "Custom message"
        assert error.context == {}

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError(config_path="x.yaml"),
            SpawnError(command="myip", reason="No such file or directory"),
            ExecutionError(command="myip", exit_code=2),
            CommandTimeoutError(command="myip", timeout_seconds=30.0),
            ParseError("bogus"),
            SourceNotFoundError("nope"),
        ],
    )
    def test_all_errors_caught_as_base(self, error):
        """Every ipsource error can be caught as IPSourceError."""
        with pytest.raises(IPSourceError):
            raise error


class TestConfigurationError:
    def test_default_message_includes_key_and_type(self):
        error = ConfigurationError(
            config_path="ipsource.yaml", key="source.command", expected_type="str"
        )
        assert "ipsource.yaml" in str(error)
        assert "source.command" in str(error)
        assert "expected str" in str(error)

    def test_context(self):
        error = ConfigurationError(config_path="<directive>", key="command")
        assert error.context == {
            "config_path": "<directive>",
            "key": "command",
            "expected_type": None,
        }

    def test_repr(self):
        error = ConfigurationError(config_path="a.yaml", key="k")
        assert repr(error) == (
            "ConfigurationError(config_path='a.yaml', key='k', expected_type=None)"
        )


class TestCommandErrors:
    def test_command_errors_share_base(self):
        for cls in (SpawnError, ExecutionError, CommandTimeoutError):
            assert issubclass(cls, CommandError)
        assert not issubclass(ParseError, CommandError)

    def test_spawn_error(self):
        error = SpawnError(command="missing-bin", reason="No such file or directory")
        assert "missing-bin" in str(error)
        assert error.context == {
            "command": "missing-bin",
            "reason": "No such file or directory",
        }

    def test_execution_error_message_names_command_and_code(self):
        error = ExecutionError(command="myip", exit_code=3, stderr="boom")
        assert str(error) == "command myip exited with: 3"
        assert error.exit_code == 3
        assert error.context["stderr"] == "boom"
        assert repr(error) == "ExecutionError(command='myip', exit_code=3)"

    def test_timeout_error_distinguishes_cancellation(self):
        timed_out = CommandTimeoutError(command="myip", timeout_seconds=0.5)
        cancelled = CommandTimeoutError(command="myip", timeout_seconds=0.5, cancelled=True)

        assert "timed out after 0.5s" in str(timed_out)
        assert "cancelled" in str(cancelled)
        assert timed_out.context["cancelled"] is False
        assert cancelled.context["cancelled"] is True
        assert not isinstance(timed_out, ExecutionError)

    def test_timeout_error_is_builtin_timeout(self):
        error = CommandTimeoutError(command="myip", timeout_seconds=0.5)

        assert isinstance(error, TimeoutError)
        assert isinstance(error, IPSourceError)
        with pytest.raises(TimeoutError, match="timed out after 0.5s"):
            raise error


class TestParseError:
    def test_message_names_token(self):
        error = ParseError("invalid-ip")
        assert str(error) == "invalid IP: invalid-ip"
        assert error.token == "invalid-ip"
        assert error.context == {"token": "invalid-ip"}
        assert repr(error) == "ParseError(token='invalid-ip')"


def test_source_not_found_error():
    error = SourceNotFoundError("dynamic_dns.ip_sources.http")
    assert "dynamic_dns.ip_sources.http" in str(error)
    assert error.context == {"name": "dynamic_dns.ip_sources.http"}
