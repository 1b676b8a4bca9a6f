"""
ipsource Test Configuration

Shared pytest fixtures and configuration for all test types.
"""

import logging
import sys
from typing import Any, Callable, Generator

import pytest
import structlog

from ipsource.core.models import CommandSpec


# Configure pytest collection
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (spawn real processes)")


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo any structlog / root logger configuration a test applied."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def python_spec() -> Callable[..., CommandSpec]:
    """Build a CommandSpec that runs a Python snippet with this interpreter.

    Using sys.executable keeps process tests independent of the shell
    utilities available on the host.
    """

    def _make(code: str, *extra_args: str, **kwargs: Any) -> CommandSpec:
        return CommandSpec(
            executable=sys.executable,
            args=["-c", code, *extra_args],
            **kwargs,
        )

    return _make


@pytest.fixture
def echo_spec(python_spec: Callable[..., CommandSpec]) -> Callable[..., CommandSpec]:
    """Build a CommandSpec that prints its first argument, like `echo`."""

    def _make(text: str, **kwargs: Any) -> CommandSpec:
        return python_spec("import sys; print(sys.argv[1])", text, **kwargs)

    return _make


@pytest.fixture
def sample_output() -> str:
    """Command output with one public IPv4 and one public IPv6 address."""
    return "8.8.8.8,2001:4860:4860::8888"
