"""Backend protocol: the native primitives a Transport is built on.

A backend owns the physical channel to the debugging host. It may serve
many targets at once and publishes every inbound event, whatever its
origin, on one shared EventBus.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..bus import EventBus
from ..target import Target, TargetInfo


@runtime_checkable
class DebuggerBackend(Protocol):
    """Protocol for debugger backends.

    All backends must implement:
    - connect/disconnect: per-target session lifecycle
    - send_command: one reply per command, correlated internally
    - list_targets: every target the host knows about
    - events: the shared inbound event feed

    Failures are reported as BackendError. A connect failure caused by
    another session on the same target must set ``already_attached``.
    """

    @property
    def events(self) -> EventBus:
        """Shared inbound event feed."""
        ...

    async def connect(self, target: Target, protocol_version: str) -> None:
        """Open a debugging session on ``target``.

        Raises:
            BackendError: If the session cannot be opened
        """
        ...

    async def disconnect(self, target: Target) -> None:
        """Close the debugging session on ``target``.

        Raises:
            BackendError: If there is no session or it cannot be closed
        """
        ...

    async def send_command(
        self, target: Target, method: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Send ``method`` to ``target`` and return its reply."""
        ...

    async def list_targets(self) -> list[TargetInfo]:
        """List all targets known to the host, attached or not."""
        ...
