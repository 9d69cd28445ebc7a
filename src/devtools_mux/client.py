"""Client - one Transport plus one Domain per protocol domain.

A Client is the demultiplexing point for inbound events: it listens on the
backend's shared EventBus and only routes events whose source matches its
own target.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from .domain import Domain
from .protocol.descriptor import ProtocolDescriptor
from .target import Target
from .transport import Transport

logger = logging.getLogger(__name__)


class Client:
    """Per-target bundle of a Transport and its protocol Domains.

    Domains are reachable as ``client.domains["Page"]``, ``client["Page"]``
    or ``client.Page``.
    """

    def __init__(self, transport: Transport, protocol: ProtocolDescriptor):
        self._transport = transport
        self._domains: dict[str, Domain] = {
            description.domain: Domain(description, transport) for description in protocol.domains
        }
        self._unsubscribe: Callable[[], None] | None = transport.backend.events.subscribe(self._dispatch)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def target(self) -> Target:
        return self._transport.target

    @property
    def domains(self) -> Mapping[str, Domain]:
        return MappingProxyType(self._domains)

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def __getattr__(self, name: str) -> Domain:
        domains = self.__dict__.get("_domains", {})
        if name in domains:
            return domains[name]
        raise AttributeError(f"No domain named {name!r}")

    def __getitem__(self, name: str) -> Domain:
        return self._domains[name]

    async def _dispatch(self, source: Target, method: str, params: dict[str, Any]) -> None:
        if not self._transport.target_matches(source):
            return

        # `method` is something like `Page.loadEventFired`
        domain_name, _, event = method.partition(".")
        domain = self._domains.get(domain_name)
        if domain is None or not event:
            logger.debug(f"Dropping event {method} for {self.target}: unknown domain")
            return
        await domain.handle_event(event, params)

    async def attach(self) -> None:
        await self._transport.attach()

    async def detach(self) -> None:
        await self._transport.detach()

    async def close(self) -> None:
        """Detach and stop receiving events. Idempotent."""
        if self._unsubscribe is None:
            return
        await self.detach()
        self._unsubscribe()
        self._unsubscribe = None

    async def __aenter__(self) -> Client:
        await self.attach()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<Client {self.target} attached={self._transport.attached}>"
