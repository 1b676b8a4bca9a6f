"""ipsource - command-backed public IP address source for dynamic DNS."""

__version__ = "0.1.0"
