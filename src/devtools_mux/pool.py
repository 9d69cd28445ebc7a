"""ClientPool - top-level interface for managing many debugging connections.

Each connection corresponds to a Target. The pool builds new Clients from
one protocol descriptor and keeps at most one live Client per Target.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .backend.base import DebuggerBackend
from .client import Client
from .errors import BackendError
from .protocol.descriptor import ProtocolDescriptor
from .target import Target
from .transport import Transport, TransportConfig

logger = logging.getLogger(__name__)


class ClientPool:
    """Registry of live Clients keyed by Target.

    The lock only guards the mapping; backend I/O always runs outside it, so
    attaching one target never waits on another. Concurrent attach calls
    for the *same* target must be serialized by the caller.
    """

    def __init__(
        self,
        protocol: ProtocolDescriptor,
        backend: DebuggerBackend,
        config: TransportConfig | None = None,
    ):
        self._protocol = protocol
        self._backend = backend
        self._config = config or TransportConfig.from_env()
        self._clients: dict[Target, Client] = {}
        self._lock = asyncio.Lock()
        # Most recently attached Client, last writer wins
        self.current: Client | None = None

    @property
    def protocol(self) -> ProtocolDescriptor:
        return self._protocol

    @property
    def backend(self) -> DebuggerBackend:
        return self._backend

    async def attach(self, target: Target) -> Client:
        """Attach to ``target``, replacing any Client already tracked for it.

        The old connection is torn down before the new one is opened. A
        failed attach still yields a registered Client; check
        ``client.transport.attached`` when success matters.
        """
        async with self._lock:
            previous = self._clients.get(target)
        if previous is not None:
            await previous.close()

        transport = Transport(target, self._backend, self._config)
        await transport.attach()
        client = Client(transport, self._protocol)

        async with self._lock:
            self._clients[target] = client
        self.current = client
        return client

    async def detach(self, target: Target) -> None:
        """Detach the Client for ``target``.

        The entry stays in the pool; use attach() to replace it or
        detach_all() to forget it.
        """
        client = self.get(target)
        if client is not None:
            await client.detach()

    def get(self, target: Target) -> Client | None:
        return self._clients.get(target)

    def has(self, target: Target) -> bool:
        return target in self._clients

    def list(self) -> list[Target]:
        return list(self._clients)

    def __contains__(self, target: object) -> bool:
        return target in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    async def detach_all(self, only_managed: bool = True) -> list[Target]:
        """Detach every tracked Client and clear the pool.

        Args:
            only_managed: When False, also force-detach every target the
                backend reports as attached, including ones this pool never
                created.

        Returns:
            Targets that were detached
        """
        async with self._lock:
            clients = dict(self._clients)
            self._clients.clear()
        if self.current is not None and self.current.target in clients:
            self.current = None

        detached: list[Target] = []
        for target, client in clients.items():
            await client.close()
            detached.append(target)

        if not only_managed:
            try:
                infos = await self._backend.list_targets()
            except BackendError as e:
                logger.error(f"Unable to list targets: {e}")
                infos = []
            for info in infos:
                if not info.attached or info.target in clients:
                    continue
                try:
                    await self._backend.disconnect(info.target)
                    detached.append(info.target)
                except BackendError as e:
                    logger.error(f"Unable to detach from {info.target}: {e}")

        logger.info(f"Detached from {[str(t) for t in detached]}")
        return detached

    async def __aenter__(self) -> ClientPool:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.detach_all()

    def __repr__(self) -> str:
        return f"<ClientPool {len(self._clients)} clients>"
