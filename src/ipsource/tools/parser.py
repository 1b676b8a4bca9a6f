"""Parse command output into IP addresses.

The command is expected to print its addresses comma separated, e.g.

    203.0.113.7, 2001:db8::1

Parsing is all-or-nothing: one bad token fails the whole output.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

import structlog

from ipsource.core.exceptions import ParseError
from ipsource.core.models import Address

log = structlog.get_logger(__name__)

DELIMITER = ","


class AddressParser:
    """Splits and strictly validates comma separated address output."""

    def __init__(self, logger: Optional[Any] = None) -> None:
        self._log = logger if logger is not None else log

    def parse(self, output: Union[str, bytes]) -> List[Address]:
        """Parse captured stdout into addresses, preserving order.

        Empty or whitespace-only output, as well as empty tokens from
        leading, trailing or repeated commas, are skipped.

        Args:
            output: Captured standard output.

        Returns:
            Parsed addresses in output order.

        Raises:
            ParseError: On the first token that is not an IP literal.
        """
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")

        addresses: List[Address] = []
        for raw in output.strip().split(DELIMITER):
            token = raw.strip()
            if not token:
                continue
            try:
                address = Address.parse(token)
            except ValueError:
                self._log.error("parsing_ip_failed", ip=token, stdout=output)
                raise ParseError(token) from None
            addresses.append(address)
            self._log.debug("parsed_ip", ip=str(address), version=address.version)

        return addresses


def parse_addresses(output: Union[str, bytes]) -> List[Address]:
    """Parse output with a default AddressParser."""
    return AddressParser().parse(output)
