"""ipsource Tools Package - the command lookup pipeline.

This package contains the stages of a lookup:
- ArgumentExpander: placeholder expansion for command arguments
- ProcessRunner: bounded subprocess execution
- AddressParser: strict comma separated address parsing
- AddressFilter: family and range policy
- CommandSource: the pipeline wired together
"""

from ipsource.tools.expander import ArgumentExpander, SubstitutionContext
from ipsource.tools.runner import ProcessRunner, spawned_process
from ipsource.tools.parser import AddressParser, parse_addresses
from ipsource.tools.filter import AddressFilter, is_globally_routable
from ipsource.tools.source import (
    COMMAND_SOURCE_ID,
    CommandSource,
    create_command_source,
    register_builtin_sources,
)

__all__ = ["ArgumentExpander", "SubstitutionContext", "ProcessRunner", "spawned_process", "AddressParser", "parse_addresses", "AddressFilter", "is_globally_routable", "COMMAND_SOURCE_ID", "CommandSource", "create_command_source", "register_builtin_sources"]
