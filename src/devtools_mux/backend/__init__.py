"""Debugger backends.

Provides the DebuggerBackend protocol plus two implementations:
- MockDebuggerBackend: in-memory, for tests and prototyping
- RemoteDebuggingBackend: a browser's DevTools remote-debugging port
"""

from .base import DebuggerBackend
from .mock import MockDebuggerBackend, RecordedCommand
from .remote import RemoteBackendConfig, RemoteDebuggingBackend

__all__ = [
    "DebuggerBackend",
    "MockDebuggerBackend",
    "RecordedCommand",
    "RemoteBackendConfig",
    "RemoteDebuggingBackend",
]
