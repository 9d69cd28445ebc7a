"""Exception hierarchy for devtools-mux.

Only NotAttachedError is raised out of the connection lifecycle; every
other lifecycle failure is logged and absorbed by the caller that hit it.
"""

from __future__ import annotations

# Prefix the remote side uses when a target already has a debugger session.
ALREADY_ATTACHED_PREFIX = "Another debugger is already attached"


class DevToolsMuxError(Exception):
    """Base class for all devtools-mux errors."""


class BackendError(DevToolsMuxError):
    """A backend primitive (connect, disconnect, send) failed.

    Attributes:
        already_attached: True when the failure means the target is already
            connected elsewhere. Transport.attach() recovers from these.
    """

    def __init__(self, message: str, *, already_attached: bool = False):
        super().__init__(message)
        self.message = message
        self.already_attached = already_attached

    @classmethod
    def from_message(cls, message: str) -> BackendError:
        """Build an error, classifying it from the remote message text."""
        return cls(message, already_attached=message.startswith(ALREADY_ATTACHED_PREFIX))


class ProtocolError(BackendError):
    """The remote side answered a command with an error object."""

    def __init__(self, method: str, code: int | None, message: str):
        super().__init__(f"{method} failed: {message}")
        self.method = method
        self.code = code


class NotAttachedError(DevToolsMuxError, ConnectionError):
    """A command was sent through a transport that is not attached."""
