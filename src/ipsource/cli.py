"""ipsource CLI Entry Point.

Runs a command IP source by hand, the same way the dynamic DNS updater
does, and prints one address per line.

Examples:
    ipsource lookup --config ipsource.yaml --no-ipv6
    ipsource exec --timeout 5 -- /usr/local/bin/myip --iface {env.IFACE}
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import typer
from pydantic import ValidationError

from ipsource.core.config import Settings, create_settings
from ipsource.core.exceptions import ConfigurationError, IPSourceError
from ipsource.core.logging import configure_logging, get_logger
from ipsource.core.models import (
    AddressVersionPolicy,
    CommandSpec,
    VersionToggle,
)
from ipsource.core.registry import SourceRegistry
from ipsource.tools.source import COMMAND_SOURCE_ID, register_builtin_sources

log = get_logger(__name__)

app = typer.Typer(
    name="ipsource",
    help="Look up this host's public IP addresses by running a command.",
    no_args_is_help=True,
)


def _parse_vars(values: Optional[List[str]]) -> Dict[str, str]:
    """Turn KEY=VALUE pairs into a placeholder mapping."""
    result: Dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            typer.echo(f"Error: --var expects KEY=VALUE, got '{item}'", err=True)
            raise typer.Exit(code=2)
        result[key] = value
    return result


def _override_policy(
    policy: AddressVersionPolicy,
    ipv4: Optional[bool],
    ipv6: Optional[bool],
) -> AddressVersionPolicy:
    """Apply --ipv4/--ipv6 flags on top of the configured policy."""
    return AddressVersionPolicy(
        ipv4=policy.ipv4 if ipv4 is None else VersionToggle.from_bool(ipv4),
        ipv6=policy.ipv6 if ipv6 is None else VersionToggle.from_bool(ipv6),
        ranges=policy.ranges,
    )


def _load_settings(config: Optional[Path], log_level: Optional[str]) -> Settings:
    if config is not None and not config.exists():
        typer.echo(f"Error: Config file '{config}' not found", err=True)
        raise typer.Exit(code=1)

    overrides = {"logging": {"level": log_level}} if log_level else None
    try:
        settings = create_settings(config_path=config, overrides=overrides)
    except ConfigurationError as e:
        typer.echo(f"Error loading config: {e}", err=True)
        raise typer.Exit(code=1)

    configure_logging(settings.logging.level, settings.logging.format)
    if config is not None:
        log.info("config_loaded", path=str(config))
    return settings


def _run_lookup(
    spec: CommandSpec,
    policy: AddressVersionPolicy,
    variables: Dict[str, str],
) -> None:
    registry = register_builtin_sources(SourceRegistry())
    source = registry.create(COMMAND_SOURCE_ID, spec=spec)
    try:
        addresses = asyncio.run(source.get_ips(policy, context=variables))
    except IPSourceError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    for address in addresses:
        typer.echo(str(address))


@app.command("lookup")
def lookup(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to YAML configuration file"
    ),
    ipv4: Optional[bool] = typer.Option(
        None, "--ipv4/--no-ipv4", help="Enable or disable IPv4 results"
    ),
    ipv6: Optional[bool] = typer.Option(
        None, "--ipv6/--no-ipv6", help="Enable or disable IPv6 results"
    ),
    var: Optional[List[str]] = typer.Option(
        None, "--var", help="Placeholder value as KEY=VALUE (repeatable)"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
) -> None:
    """Run the configured command source and print its addresses."""
    settings = _load_settings(config, log_level)
    variables = _parse_vars(var)

    try:
        spec = settings.source.to_spec()
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    policy = _override_policy(settings.ip_settings.to_policy(), ipv4, ipv6)
    _run_lookup(spec, policy, variables)


@app.command(
    "exec",
    context_settings={"allow_interspersed_args": False},
)
def exec_command(
    program: str = typer.Argument(..., help="Executable to run (not expanded)"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments, may contain {placeholders}"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Timeout in seconds (default 30)"
    ),
    directory: Optional[Path] = typer.Option(None, "--dir", help="Working directory"),
    ipv4: Optional[bool] = typer.Option(None, "--ipv4/--no-ipv4"),
    ipv6: Optional[bool] = typer.Option(None, "--ipv6/--no-ipv6"),
    var: Optional[List[str]] = typer.Option(None, "--var", help="KEY=VALUE placeholder"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
) -> None:
    """Run an ad hoc command through the lookup pipeline."""
    _load_settings(None, log_level)
    variables = _parse_vars(var)

    try:
        spec = CommandSpec(
            executable=program,
            args=args or [],
            dir=str(directory) if directory is not None else None,
            timeout=timeout,
        )
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        typer.echo(f"Error: invalid command: {reasons}", err=True)
        raise typer.Exit(code=1)

    policy = _override_policy(AddressVersionPolicy(), ipv4, ipv6)
    _run_lookup(spec, policy, variables)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
