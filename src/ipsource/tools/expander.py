"""Placeholder expansion for command arguments.

Placeholders have the form `{name}`. Values come from the per-call
SubstitutionContext first, then from the built-in global placeholders:

    {env.NAME}           environment variable NAME
    {system.hostname}    host name
    {system.os}          operating system (linux, darwin, windows, ...)
    {system.arch}        machine architecture
    {system.wd}          current working directory
    {time.now.unix}      seconds since the epoch
    {time.now.unix_ms}   milliseconds since the epoch
    {time.now.rfc3339}   current UTC time in RFC 3339 form

Unknown placeholders expand to the empty string. `\\{` and `\\}` produce
literal braces. The executable is never passed through the expander.
"""

from __future__ import annotations

import os
import platform
import socket
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import structlog

log = structlog.get_logger(__name__)

_ARCH_ALIASES = {"x86_64": "amd64", "aarch64": "arm64"}


def _hostname() -> str:
    return socket.gethostname()


def _os_name() -> str:
    return platform.system().lower()


def _arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def _unix() -> str:
    return str(int(time.time()))


def _unix_ms() -> str:
    return str(int(time.time() * 1000))


def _rfc3339() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


GLOBAL_PLACEHOLDERS: Dict[str, Callable[[], str]] = {
    "system.hostname": _hostname,
    "system.os": _os_name,
    "system.arch": _arch,
    "system.wd": os.getcwd,
    "time.now.unix": _unix,
    "time.now.unix_ms": _unix_ms,
    "time.now.rfc3339": _rfc3339,
}


class SubstitutionContext:
    """Per-call key -> value lookup for placeholder expansion.

    Attributes:
        values: Caller-supplied placeholder values.
        include_globals: Whether env/system/time placeholders resolve.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, str]] = None,
        include_globals: bool = True,
    ) -> None:
        self.values: Dict[str, str] = dict(values or {})
        self.include_globals = include_globals

    def lookup(self, key: str) -> Optional[str]:
        """Resolve a placeholder key, or None if it is unknown."""
        if key in self.values:
            return self.values[key]
        if not self.include_globals:
            return None
        if key.startswith("env."):
            return os.environ.get(key[len("env."):])
        provider = GLOBAL_PLACEHOLDERS.get(key)
        if provider is not None:
            return provider()
        return None


class ArgumentExpander:
    """Expands `{placeholder}` tokens in argument templates."""

    def __init__(self, empty: str = "") -> None:
        """Initialize the expander.

        Args:
            empty: Replacement text for unresolved placeholders.
        """
        self._empty = empty

    def expand(self, args: Sequence[str], context: Optional[SubstitutionContext] = None) -> List[str]:
        """Expand every argument template.

        Args:
            args: Argument templates in order.
            context: Substitution values for this call.

        Returns:
            A list the same length and order as args.
        """
        ctx = context if context is not None else SubstitutionContext()
        return [self.replace_all(arg, ctx) for arg in args]

    def replace_all(self, text: str, context: SubstitutionContext) -> str:
        """Replace every placeholder in a single string."""
        out: List[str] = []
        i = 0
        n = len(text)
        while i < n:
            char = text[i]

            # escaped brace
            if char == "\\" and i + 1 < n and text[i + 1] in "{}":
                out.append(text[i + 1])
                i += 2
                continue

            if char != "{":
                out.append(char)
                i += 1
                continue

            end = self._find_closing(text, i + 1)
            if end < 0:
                out.append(char)
                i += 1
                continue

            key = text[i + 1:end]
            value = context.lookup(key)
            if value is None:
                log.debug("placeholder_unresolved", placeholder=key)
                value = self._empty
            out.append(value)
            i = end + 1

        return "".join(out)

    @staticmethod
    def _find_closing(text: str, start: int) -> int:
        """Return the index of the `}` closing a placeholder, or -1.

        A key may not contain whitespace or another `{`; in that case the
        opening brace is treated as literal text.
        """
        for j in range(start, len(text)):
            c = text[j]
            if c == "}":
                return j if j > start else -1
            if c == "{" or c.isspace():
                return -1
        return -1
