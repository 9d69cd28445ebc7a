"""Protocol descriptor layer.

The descriptor is static input: the core reads it to build bindings and
never writes it back.
"""

from .descriptor import (
    CommandDescriptor,
    DomainDescriptor,
    EventDescriptor,
    ProtocolDescriptor,
    ProtocolVersion,
)

__all__ = [
    "CommandDescriptor",
    "DomainDescriptor",
    "EventDescriptor",
    "ProtocolDescriptor",
    "ProtocolVersion",
]
