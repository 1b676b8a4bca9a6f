"""Command IP source.

Looks up the public IP addresses of this machine by executing a script
or command from the filesystem. The command must print the addresses
comma separated in plain text.

Pipeline per lookup:

    ArgumentExpander -> ProcessRunner -> AddressParser -> AddressFilter

Usage:
    registry = SourceRegistry()
    register_builtin_sources(registry)

    source = registry.create(COMMAND_SOURCE_ID, spec=settings.source.to_spec())
    ips = await source.get_ips(settings.ip_settings.to_policy())
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional, Union

import structlog

from ipsource.core.models import Address, AddressVersionPolicy, CommandSpec
from ipsource.core.registry import SourceRegistry
from ipsource.tools.expander import ArgumentExpander, SubstitutionContext
from ipsource.tools.filter import AddressFilter
from ipsource.tools.parser import AddressParser
from ipsource.tools.runner import ProcessRunner

log = structlog.get_logger(__name__)

COMMAND_SOURCE_ID = "dynamic_dns.ip_sources.command"


class CommandSource:
    """IP source backed by an external command.

    Holds only the immutable CommandSpec, so one instance can serve
    concurrent lookups.
    """

    def __init__(
        self,
        spec: CommandSpec,
        logger: Optional[Any] = None,
        runner: Optional[ProcessRunner] = None,
    ) -> None:
        """Initialize the source.

        Args:
            spec: Command to run.
            logger: Optional structlog logger; bound with the command name.
            runner: Optional ProcessRunner (injectable for tests).
        """
        self.spec = spec
        self._log = (logger if logger is not None else log).bind(
            source=COMMAND_SOURCE_ID, command=spec.executable
        )
        self._expander = ArgumentExpander()
        self._runner = runner if runner is not None else ProcessRunner(logger=self._log)
        self._parser = AddressParser(logger=self._log)

    async def get_ips(
        self,
        policy: Optional[AddressVersionPolicy] = None,
        context: Optional[Union[SubstitutionContext, Mapping[str, str]]] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> List[Address]:
        """Get the public addresses of this machine.

        Args:
            policy: Family and range policy (default: both families,
                globally routable only).
            context: Placeholder values for argument expansion.
            cancel: Optional event that aborts the command when set.

        Returns:
            Filtered addresses in the order the command printed them.

        Raises:
            SpawnError, ExecutionError, CommandTimeoutError, ParseError
        """
        if policy is None:
            policy = AddressVersionPolicy()
        if context is not None and not isinstance(context, SubstitutionContext):
            context = SubstitutionContext(context)

        # placeholders are expanded in args only, never in the executable
        args = self._expander.expand(self.spec.args, context)

        result = await self._runner.run(self.spec, args, cancel=cancel)
        addresses = self._parser.parse(result.stdout)
        selected = AddressFilter(policy, logger=self._log).apply(addresses)

        self._log.debug(
            "ip_lookup_complete",
            parsed=len(addresses),
            selected=[str(a) for a in selected],
            duration_ms=result.duration_ms,
        )
        return selected

    def get_ips_sync(
        self,
        policy: Optional[AddressVersionPolicy] = None,
        context: Optional[Union[SubstitutionContext, Mapping[str, str]]] = None,
    ) -> List[Address]:
        """Blocking variant of get_ips() for callers without an event loop."""
        return asyncio.run(self.get_ips(policy, context=context))


def create_command_source(
    spec: CommandSpec,
    logger: Optional[Any] = None,
) -> CommandSource:
    """Factory registered under COMMAND_SOURCE_ID."""
    return CommandSource(spec, logger=logger)


def register_builtin_sources(registry: SourceRegistry) -> SourceRegistry:
    """Register the sources shipped with ipsource on a host-owned registry."""
    registry.register(COMMAND_SOURCE_ID, create_command_source)
    return registry
