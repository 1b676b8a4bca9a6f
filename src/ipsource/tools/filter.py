"""Filter parsed addresses by family enablement and range policy.

An address is kept only if its family is enabled and it lies inside
one of the configured ranges. With no ranges configured, only globally
routable unicast addresses are kept: private, loopback, link-local,
documentation, shared (CGNAT), multicast and other reserved ranges are
dropped.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import structlog

from ipsource.core.models import Address, AddressVersionPolicy

log = structlog.get_logger(__name__)


def is_globally_routable(address: Address) -> bool:
    """Return True for public unicast addresses."""
    ip = address.ip
    return ip.is_global and not ip.is_multicast


class AddressFilter:
    """Applies an AddressVersionPolicy to a sequence of addresses."""

    def __init__(self, policy: AddressVersionPolicy, logger: Optional[Any] = None) -> None:
        """Initialize the filter.

        Args:
            policy: Family enablement and permitted ranges.
            logger: Optional structlog logger.
        """
        self.policy = policy
        self._log = logger if logger is not None else log

    def allows(self, address: Address) -> bool:
        """Return whether a single address passes both gates."""
        if not self.policy.family_enabled(address.version):
            self._log.debug("ip_dropped", ip=str(address), reason="version_disabled")
            return False
        if not self._in_range(address):
            self._log.debug("ip_dropped", ip=str(address), reason="out_of_range")
            return False
        return True

    def apply(self, addresses: Iterable[Address]) -> List[Address]:
        """Return the addresses that pass, in their original order."""
        return [address for address in addresses if self.allows(address)]

    def _in_range(self, address: Address) -> bool:
        if not self.policy.ranges:
            return is_globally_routable(address)
        for network in self.policy.ranges:
            if network.version == address.version and address.ip in network:
                return True
        return False
