"""Domain - descriptor-driven bindings for one protocol namespace.

Every command and event of a domain is bound from descriptor data when the
Domain is built; there is no hand-written per-domain code.

    await client.Page.enable()
    client.Page.loadEventFired(on_load)      # subscribe
    client.Page.loadEventFired()             # unsubscribe all
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from .protocol.descriptor import DomainDescriptor

if TYPE_CHECKING:
    from .transport import Transport

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]
CommandInvoker = Callable[..., Awaitable[dict[str, Any]]]


class EventBinding:
    """Dual-mode event accessor.

    Called with a handler it subscribes; called with nothing it removes
    every handler for the event.
    """

    def __init__(self, domain: Domain, name: str):
        self._domain = domain
        self.name = name

    def __call__(self, handler: EventHandler | None = None) -> None:
        if handler is not None:
            self._domain.on(self.name, handler)
        else:
            self._domain.off(self.name)

    def __repr__(self) -> str:
        return f"<event {self._domain.name}.{self.name}>"


class Domain:
    """Commands and event listeners of one protocol domain."""

    def __init__(self, description: DomainDescriptor, transport: Transport):
        self._transport = transport
        self.name = description.domain
        self.dependencies = list(description.dependencies)
        self._commands: dict[str, CommandInvoker] = {}
        self._events: dict[str, EventBinding] = {}
        self._listeners: dict[str, list[EventHandler]] = {}

        for name in description.command_names:
            self._commands[name] = self._make_command(name)

        for name in description.event_names:
            self._listeners[name] = []
            self._events[name] = EventBinding(self, name)

    @property
    def commands(self) -> list[str]:
        return list(self._commands)

    @property
    def events(self) -> list[str]:
        return list(self._events)

    def _make_command(self, name: str) -> CommandInvoker:
        method = self._format_method(name)
        transport = self._transport

        async def command(params: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
            merged = {**(params or {}), **kwargs}
            return await transport.send(method, merged or None)

        command.__name__ = name
        command.__qualname__ = method
        return command

    def __getattr__(self, name: str) -> Any:
        # Only reached for names that are not real attributes
        commands = self.__dict__.get("_commands", {})
        if name in commands:
            return commands[name]
        events = self.__dict__.get("_events", {})
        if name in events:
            return events[name]
        raise AttributeError(f"{self.__dict__.get('name', 'Domain')}.{name} is not a command or event")

    def __getitem__(self, name: str) -> Any:
        if name in self._commands:
            return self._commands[name]
        if name in self._events:
            return self._events[name]
        raise KeyError(self._format_method(name))

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._commands) | set(self._events))

    async def call(self, command: str, params: dict[str, Any] | None = None, **kwargs: Any) -> dict[str, Any]:
        """Invoke a command by name.

        Raises:
            AttributeError: If the domain has no such command
        """
        if command not in self._commands:
            raise AttributeError(f"{self._format_method(command)} is not a command")
        return await self._commands[command](params, **kwargs)

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler, e.g. ``Network.on("requestWillBeSent", fn)``.

        Unknown events are logged and ignored.
        """
        if event not in self._listeners:
            logger.error(f"{self._format_method(event)} is not an event")
            return
        self._listeners[event].append(handler)

    def off(self, event: str | None = None, handler: EventHandler | None = None) -> None:
        """Remove handlers.

        - ``off()`` clears every event of this domain
        - ``off(event)`` clears one event
        - ``off(event, handler)`` removes just that handler
        """
        if event is None:
            for name in self._listeners:
                self._listeners[name] = []
            return

        if event not in self._listeners:
            logger.error(f"{self._format_method(event)} is not an event")
            return

        if handler is not None:
            self._listeners[event] = [f for f in self._listeners[event] if f is not handler]
        else:
            self._listeners[event] = []

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self.on(event, handler)

    def unsubscribe_all(self, event: str) -> None:
        self.off(event)

    def listeners(self, event: str) -> list[EventHandler]:
        """Copy of the handlers registered for ``event``."""
        return list(self._listeners.get(event, []))

    async def handle_event(self, event: str, params: dict[str, Any]) -> None:
        """Run the handlers for an inbound event in registration order.

        Handler exceptions propagate to the caller.
        """
        if event not in self._listeners:
            return
        for listener in list(self._listeners[event]):
            result = listener(params)
            if inspect.isawaitable(result):
                await result

    def _format_method(self, method: str) -> str:
        """'requestWillBeSent' -> 'Network.requestWillBeSent'"""
        return f"{self.name}.{method}"

    def __repr__(self) -> str:
        return f"<Domain {self.name}: {len(self._commands)} commands, {len(self._events)} events>"
