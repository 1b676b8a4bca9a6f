"""ipsource Exception Hierarchy.

This module defines the structured exception hierarchy for ipsource.
All custom exceptions inherit from IPSourceError, so a caller that only
wants "the lookup failed" can catch a single type.

Exception Categories:
- Configuration errors → raised at load time, never during a lookup
- Lookup errors → SpawnError, ExecutionError, CommandTimeoutError, ParseError

A failed lookup never returns a partial address list; every failure
surfaces as exactly one of these exceptions.

Usage:
    from ipsource.core.exceptions import ExecutionError, ParseError

    try:
        ips = await source.get_ips(policy)
    except IPSourceError as e:
        log.error("lookup_failed", **e.context)
"""

from typing import Any, Optional


class IPSourceError(Exception):
    """Base exception for all ipsource errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: Optional[str] = None) -> None:
        """Initialize IPSourceError.

        Args:
            message: Optional custom message. Defaults to a generic message.
        """
        self.message = message or "An ipsource error occurred."
        super().__init__(self.message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context dictionary for structured logging.

        Returns:
            dict: Key-value pairs of exception context.
        """
        return {}

    def __repr__(self) -> str:
        """Return debug representation."""
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigurationError(IPSourceError):
    """Configuration file, directive or value is invalid.

    Raised while loading configuration, before any command runs.

    Attributes:
        config_path: Path to the configuration file (or "<directive>").
        key: The configuration key that caused the error.
        expected_type: The expected type for the value.
    """

    def __init__(
        self,
        config_path: str,
        key: Optional[str] = None,
        expected_type: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            config_path: Path to the config file.
            key: Optional key that caused the error.
            expected_type: Optional expected type.
            message: Optional custom message.
        """
        self.config_path = config_path
        self.key = key
        self.expected_type = expected_type

        if message is None:
            key_info = f" key '{key}'" if key else ""
            type_info = f" (expected {expected_type})" if expected_type else ""
            message = f"Configuration error in '{config_path}'{key_info}{type_info}."

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for configuration error."""
        return {
            "config_path": self.config_path,
            "key": self.key,
            "expected_type": self.expected_type,
        }

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"ConfigurationError(config_path={self.config_path!r}, "
            f"key={self.key!r}, expected_type={self.expected_type!r})"
        )


class CommandError(IPSourceError):
    """Base class for failures of the external command.

    Attributes:
        command: The executable that was run (never placeholder-expanded).
    """

    def __init__(self, message: str, command: str) -> None:
        self.command = command
        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for command errors."""
        return {"command": self.command}


class SpawnError(CommandError):
    """The external command could not be started at all.

    Raised when the binary is missing, not executable, or the working
    directory does not exist. No process was created.

    Attributes:
        command: The executable that failed to start.
        reason: Description from the operating system.
    """

    def __init__(
        self,
        command: str,
        reason: str,
        message: Optional[str] = None,
    ) -> None:
        """Initialize SpawnError.

        Args:
            command: The executable that failed to start.
            reason: Why it failed to start.
            message: Optional custom message.
        """
        self.reason = reason

        if message is None:
            message = f"command {command} could not be started: {reason}"

        super().__init__(message, command=command)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for spawn error."""
        ctx = super().context
        ctx["reason"] = self.reason
        return ctx

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return f"SpawnError(command={self.command!r}, reason={self.reason!r})"


class ExecutionError(CommandError):
    """The external command ran and exited with a non-zero status.

    Attributes:
        command: The executable that was run.
        exit_code: Process exit code.
        stdout: Captured standard output (decoded, for diagnostics).
        stderr: Captured standard error (decoded, for diagnostics).
    """

    def __init__(
        self,
        command: str,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ) -> None:
        """Initialize ExecutionError.

        Args:
            command: The executable that was run.
            exit_code: Non-zero exit code.
            stdout: Captured standard output.
            stderr: Captured standard error.
            message: Optional custom message.
        """
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

        if message is None:
            message = f"command {command} exited with: {exit_code}"

        super().__init__(message, command=command)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for execution error."""
        ctx = super().context
        ctx["exit_code"] = self.exit_code
        ctx["stdout"] = self.stdout
        ctx["stderr"] = self.stderr
        return ctx

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"ExecutionError(command={self.command!r}, "
            f"exit_code={self.exit_code!r})"
        )


class CommandTimeoutError(CommandError, TimeoutError):
    """The command did not finish before its deadline.

    Also a builtin TimeoutError, so callers catching that see it too.

    Raised when either the configured timeout elapsed or the caller's
    cancellation signal fired first. The process has been killed.

    Attributes:
        command: The executable that was run.
        timeout_seconds: Configured timeout in seconds.
        cancelled: True when the caller cancelled rather than the timeout.
    """

    def __init__(
        self,
        command: str,
        timeout_seconds: float,
        cancelled: bool = False,
        message: Optional[str] = None,
    ) -> None:
        """Initialize CommandTimeoutError.

        Args:
            command: The executable that was run.
            timeout_seconds: Timeout threshold.
            cancelled: Whether the caller's cancellation signal fired.
            message: Optional custom message.
        """
        self.timeout_seconds = timeout_seconds
        self.cancelled = cancelled

        if message is None:
            if cancelled:
                message = f"command {command} was cancelled before it exited"
            else:
                message = f"command {command} timed out after {timeout_seconds}s"

        super().__init__(message, command=command)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for timeout error."""
        ctx = super().context
        ctx["timeout_seconds"] = self.timeout_seconds
        ctx["cancelled"] = self.cancelled
        return ctx

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return (
            f"CommandTimeoutError(command={self.command!r}, "
            f"timeout_seconds={self.timeout_seconds!r}, cancelled={self.cancelled!r})"
        )


class ParseError(IPSourceError):
    """A token in the command output is not a valid IP address.

    Parsing is all-or-nothing, so this aborts the whole lookup.

    Attributes:
        token: The offending token, exactly as it appeared in the output.
    """

    def __init__(self, token: str, message: Optional[str] = None) -> None:
        """Initialize ParseError.

        Args:
            token: The token that failed validation.
            message: Optional custom message.
        """
        self.token = token

        if message is None:
            message = f"invalid IP: {token}"

        super().__init__(message)

    @property
    def context(self) -> dict[str, Any]:
        """Return context for parse error."""
        return {"token": self.token}

    def __repr__(self) -> str:
        """Return debug representation with attributes."""
        return f"ParseError(token={self.token!r})"


class SourceNotFoundError(IPSourceError):
    """No address source is registered under the requested name."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        self.name = name
        super().__init__(message or f"No IP source registered as '{name}'.")

    @property
    def context(self) -> dict[str, Any]:
        return {"name": self.name}
