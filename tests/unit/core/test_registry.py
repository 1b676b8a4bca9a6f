"""Unit tests for the explicit IP source registry."""

import pytest

from ipsource.core.exceptions import SourceNotFoundError
from ipsource.core.models import CommandSpec
from ipsource.core.registry import SourceRegistry
from ipsource.tools.source import (
    COMMAND_SOURCE_ID,
    CommandSource,
    register_builtin_sources,
)


def test_new_registry_is_empty():
    """Nothing is registered implicitly at import time."""
    registry = SourceRegistry()
    assert registry.names() == []
    assert COMMAND_SOURCE_ID not in registry


def test_register_and_create():
    registry = SourceRegistry()
    registry.register("test.source", lambda value: {"value": value})

    assert "test.source" in registry
    assert registry.create("test.source", value=3) == {"value": 3}


def test_duplicate_registration_rejected():
    registry = SourceRegistry()
    registry.register("test.source", dict)
    with pytest.raises(ValueError, match="already registered"):
        registry.register("test.source", dict)


def test_empty_name_rejected():
    with pytest.raises(ValueError):
        SourceRegistry().register("", dict)


def test_unknown_source():
    with pytest.raises(SourceNotFoundError):
        SourceRegistry().create("dynamic_dns.ip_sources.missing")


def test_builtin_command_source():
    registry = register_builtin_sources(SourceRegistry())

    assert registry.names() == [COMMAND_SOURCE_ID]
    assert COMMAND_SOURCE_ID == "dynamic_dns.ip_sources.command"

    source = registry.create(COMMAND_SOURCE_ID, spec=CommandSpec(executable="myip"))
    assert isinstance(source, CommandSource)
    assert source.spec.executable == "myip"


def test_registries_are_independent():
    first = register_builtin_sources(SourceRegistry())
    second = SourceRegistry()
    assert COMMAND_SOURCE_ID in first
    assert COMMAND_SOURCE_ID not in second
