"""devtools-mux - multi-target client for DevTools-style debugging protocols.

One backend connection serves many targets. Each target gets a Client with
descriptor-generated Domains, and every Client filters the shared event
feed down to its own target.

Usage:
    backend = MockDebuggerBackend()
    pool = ClientPool(ProtocolDescriptor.load("protocol.json"), backend)
    client = await pool.attach(Target(id=1))
    await client.Page.enable()
    client.Page.loadEventFired(lambda params: print(params))
"""

from .backend import (
    DebuggerBackend,
    MockDebuggerBackend,
    RemoteBackendConfig,
    RemoteDebuggingBackend,
)
from .bus import EventBus
from .client import Client
from .domain import Domain, EventBinding
from .errors import BackendError, DevToolsMuxError, NotAttachedError, ProtocolError
from .pool import ClientPool
from .protocol import DomainDescriptor, ProtocolDescriptor
from .target import Target, TargetInfo
from .transport import Transport, TransportConfig

__version__ = "0.1.0"

__all__ = [
    # Core
    "ClientPool",
    "Client",
    "Domain",
    "EventBinding",
    "Transport",
    "TransportConfig",
    "EventBus",
    # Data
    "Target",
    "TargetInfo",
    "ProtocolDescriptor",
    "DomainDescriptor",
    # Backends
    "DebuggerBackend",
    "MockDebuggerBackend",
    "RemoteDebuggingBackend",
    "RemoteBackendConfig",
    # Errors
    "DevToolsMuxError",
    "BackendError",
    "ProtocolError",
    "NotAttachedError",
]
