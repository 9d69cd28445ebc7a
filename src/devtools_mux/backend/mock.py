"""In-memory backend for tests and host prototyping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..bus import EventBus
from ..errors import ALREADY_ATTACHED_PREFIX, BackendError
from ..target import Target, TargetInfo

logger = logging.getLogger(__name__)


@dataclass
class RecordedCommand:
    """A command that went through the mock backend."""

    target: Target
    method: str
    params: dict[str, Any] = field(default_factory=dict)


class MockDebuggerBackend:
    """Mock backend for testing.

    Records every primitive call and lets tests inject failures, replies and
    inbound events. No actual I/O - everything is in-memory.

    Usage:
        backend = MockDebuggerBackend()
        backend.set_response("Runtime.evaluate", {"result": {"value": 2}})

        pool = ClientPool(descriptor, backend)
        client = await pool.attach(Target(id=1))
        await client.Page.enable()

        assert backend.recorded_commands[0].method == "Page.enable"
        await backend.emit(Target(id=1), "Page.loadEventFired", {"timestamp": 1})
    """

    def __init__(self) -> None:
        self._events = EventBus()
        self._attached: set[Target] = set()
        self._known: dict[Target, TargetInfo] = {}
        self._responses: dict[str, dict[str, Any]] = {}
        self._recorded_commands: list[RecordedCommand] = []
        self._connect_failures: list[BackendError] = []
        self._disconnect_failures: list[BackendError] = []
        self._list_failures: list[BackendError] = []
        self.connect_calls: list[Target] = []
        self.disconnect_calls: list[Target] = []
        # Every primitive call in order, e.g. ("connect", target)
        self.call_log: list[tuple[str, Target]] = []

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def recorded_commands(self) -> list[RecordedCommand]:
        """Get all commands sent through this backend."""
        return self._recorded_commands.copy()

    def is_attached(self, target: Target) -> bool:
        return target in self._attached

    def add_target(self, target: Target, attached: bool = False) -> None:
        """Seed a target the host knows about (optionally already attached)."""
        self._known[target] = TargetInfo(target=target, attached=attached)
        if attached:
            self._attached.add(target)

    def set_response(self, method: str, reply: dict[str, Any]) -> None:
        """Set canned reply for a command method."""
        self._responses[method] = reply

    def fail_connect(self, times: int = 1, *, already_attached: bool = True, message: str | None = None) -> None:
        """Make the next ``times`` connect calls fail."""
        if message is None:
            message = f"{ALREADY_ATTACHED_PREFIX} to the target." if already_attached else "Cannot access target"
        for _ in range(times):
            self._connect_failures.append(BackendError(message, already_attached=already_attached))

    def fail_disconnect(self, times: int = 1, message: str = "Debugger is not attached") -> None:
        """Make the next ``times`` disconnect calls fail."""
        for _ in range(times):
            self._disconnect_failures.append(BackendError(message))

    def fail_list_targets(self, times: int = 1, message: str = "Browser not reachable") -> None:
        """Make the next ``times`` list_targets calls fail."""
        for _ in range(times):
            self._list_failures.append(BackendError(message))

    async def connect(self, target: Target, protocol_version: str) -> None:
        self.connect_calls.append(target)
        self.call_log.append(("connect", target))
        if self._connect_failures:
            raise self._connect_failures.pop(0)
        if target in self._attached:
            raise BackendError.from_message(f"{ALREADY_ATTACHED_PREFIX} to the target with id: {target.id}.")
        self._attached.add(target)
        self._known[target] = TargetInfo(target=target, attached=True)

    async def disconnect(self, target: Target) -> None:
        self.disconnect_calls.append(target)
        self.call_log.append(("disconnect", target))
        if self._disconnect_failures:
            raise self._disconnect_failures.pop(0)
        if target not in self._attached:
            raise BackendError(f"Debugger is not attached to the target with id: {target.id}.")
        self._attached.discard(target)
        self._known[target] = TargetInfo(target=target, attached=False)

    async def send_command(
        self, target: Target, method: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        self._recorded_commands.append(RecordedCommand(target=target, method=method, params=params or {}))
        return self._responses.get(method, {})

    async def list_targets(self) -> list[TargetInfo]:
        if self._list_failures:
            raise self._list_failures.pop(0)
        return list(self._known.values())

    async def emit(self, source: Target, method: str, params: dict[str, Any] | None = None) -> None:
        """Inject an inbound event as if the host had sent it."""
        await self._events.publish(source, method, params)

    def clear(self) -> None:
        """Clear recorded calls, canned replies and pending failures."""
        self._recorded_commands.clear()
        self._responses.clear()
        self._connect_failures.clear()
        self._disconnect_failures.clear()
        self._list_failures.clear()
        self.connect_calls.clear()
        self.disconnect_calls.clear()
        self.call_log.clear()
