"""Core Data Models for ipsource.

This module defines the data structures that flow through a lookup:
the caller-owned CommandSpec, the ExecutionResult captured from the
subprocess, the AddressVersionPolicy used for filtering, and the
validated Address values that make up the result.

Models:
    CommandSpec: Immutable command configuration (pydantic, frozen).
    ExecutionResult: Captured output and exit status of one run.
    VersionToggle: Explicit enabled/disabled/default switch per family.
    AddressVersionPolicy: Family enablement plus permitted ranges.
    Address: A validated IP address tagged with its family.

Usage:
    from ipsource.core.models import CommandSpec, AddressVersionPolicy

    spec = CommandSpec(executable="/usr/local/bin/myip", args=["--iface", "{iface}"])
    policy = AddressVersionPolicy(ipv6=VersionToggle.DISABLED)
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TIMEOUT_SECONDS = 30.0

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)")


def parse_duration(value: Union[str, int, float, None]) -> Optional[float]:
    """Parse a duration into seconds.

    Numbers are taken as seconds. Strings may be a bare number or a
    sequence of value/unit pairs such as "500ms", "10s" or "1m30s".

    Args:
        value: Duration as number, string, or None.

    Returns:
        Duration in seconds, or None when value is None or empty.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    if not text:
        return None

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    try:
        return sign * float(text)
    except ValueError:
        pass

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"Invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"Invalid duration: {value!r}")
    return sign * total


class CommandSpec(BaseModel):
    """Immutable description of the command to run.

    Attributes:
        executable: Program to run. Never placeholder-expanded.
        args: Argument templates, expanded per call.
        dir: Working directory for the subprocess (None = inherit).
        timeout: Deadline in seconds. Unset or <= 0 resolves to 30s.
    """

    model_config = ConfigDict(frozen=True)

    executable: str = Field(min_length=1)
    args: Tuple[str, ...] = ()
    dir: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @field_validator("executable")
    @classmethod
    def validate_executable(cls, v: str) -> str:
        """Reject blank executables."""
        if not v.strip():
            raise ValueError("executable cannot be blank")
        return v

    @field_validator("args", mode="before")
    @classmethod
    def coerce_args(cls, v: object) -> Tuple[str, ...]:
        """Accept any sequence of strings (or None) for args."""
        if v is None:
            return ()
        if isinstance(v, str):
            raise ValueError("args must be a list of strings, not a string")
        return tuple(str(item) for item in v)  # type: ignore[union-attr]

    @field_validator("dir", mode="before")
    @classmethod
    def empty_dir_is_none(cls, v: object) -> object:
        """Treat an empty working directory as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("timeout", mode="before")
    @classmethod
    def resolve_timeout(cls, v: object) -> float:
        """Apply the 30 second default for missing or non-positive timeouts."""
        seconds = parse_duration(v)  # type: ignore[arg-type]
        if seconds is None or seconds <= 0:
            return DEFAULT_TIMEOUT_SECONDS
        return seconds


class ExecutionOutcome(str, Enum):
    """How a subprocess run ended."""

    EXITED = "exited"
    SPAWN_FAILED = "spawn_failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExecutionResult:
    """Captured result of running a command.

    Attributes:
        stdout: Captured standard output bytes.
        stderr: Captured standard error bytes.
        exit_code: Process exit code (-1 when the process never exited normally).
        outcome: How the run ended (see ExecutionOutcome).
        duration_ms: Wall-clock duration in milliseconds.
        error: OS error text when the process could not be started.
    """

    stdout: bytes
    stderr: bytes
    exit_code: int
    outcome: ExecutionOutcome = ExecutionOutcome.EXITED
    duration_ms: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """True when the process exited with status 0."""
        return self.outcome is ExecutionOutcome.EXITED and self.exit_code == 0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class VersionToggle(str, Enum):
    """Explicit per-family switch. USE_DEFAULT resolves to enabled."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    USE_DEFAULT = "default"

    @property
    def is_enabled(self) -> bool:
        return self is not VersionToggle.DISABLED

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> VersionToggle:
        """Map an optional boolean (None = not configured) to a toggle."""
        if value is None:
            return cls.USE_DEFAULT
        return cls.ENABLED if value else cls.DISABLED


@dataclass(frozen=True)
class AddressVersionPolicy:
    """Which addresses a lookup may return.

    Attributes:
        ipv4: IPv4 enablement (default: enabled).
        ipv6: IPv6 enablement (default: enabled).
        ranges: Permitted networks. Empty means the default policy of
            globally routable, non-multicast addresses only.
    """

    ipv4: VersionToggle = VersionToggle.USE_DEFAULT
    ipv6: VersionToggle = VersionToggle.USE_DEFAULT
    ranges: Tuple[IPNetwork, ...] = field(default_factory=tuple)

    @classmethod
    def from_ranges(
        cls,
        ranges: List[str],
        ipv4: VersionToggle = VersionToggle.USE_DEFAULT,
        ipv6: VersionToggle = VersionToggle.USE_DEFAULT,
    ) -> AddressVersionPolicy:
        """Build a policy from CIDR strings (single IPs are accepted too).

        Raises:
            ValueError: If a range is not a valid network.
        """
        networks = tuple(ipaddress.ip_network(r.strip(), strict=False) for r in ranges)
        return cls(ipv4=ipv4, ipv6=ipv6, ranges=networks)

    def family_enabled(self, version: int) -> bool:
        """Return whether addresses of the given IP version are wanted."""
        if version == 4:
            return self.ipv4.is_enabled
        if version == 6:
            return self.ipv6.is_enabled
        return False


@dataclass(frozen=True)
class Address:
    """A validated IP address tagged with its family.

    Attributes:
        ip: The parsed address.
    """

    ip: IPAddress

    @classmethod
    def parse(cls, text: str) -> Address:
        """Parse a strict IPv4 or IPv6 literal.

        IPv6 zone suffixes ("fe80::1%eth0") are rejected; a zone is only
        meaningful on this host.

        Raises:
            ValueError: If text is not a valid IP literal.
        """
        if "%" in text:
            raise ValueError(f"{text!r} has a zone suffix")
        return cls(ipaddress.ip_address(text))

    @property
    def version(self) -> int:
        return self.ip.version

    @property
    def is_ipv4(self) -> bool:
        return self.ip.version == 4

    @property
    def is_ipv6(self) -> bool:
        return self.ip.version == 6

    def __str__(self) -> str:
        return str(self.ip)
