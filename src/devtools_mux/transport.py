"""Transport - the live connection to one debuggee target.

A Transport wraps the backend primitives for a single Target and is owned
by exactly one Client. Attach failures are soft: callers check
``transport.attached`` rather than catching exceptions.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any

from .backend.base import DebuggerBackend
from .errors import BackendError, NotAttachedError
from .target import Target

logger = logging.getLogger(__name__)


@dataclass
class TransportConfig:
    """Connection settings shared by every Transport a pool creates."""

    protocol_version: str = "1.3"
    max_attempts: int = 5
    # Seconds to sleep between attach attempts
    retry_delay: float = 0.0

    @classmethod
    def from_env(cls) -> TransportConfig:
        """Build a config, overriding defaults from DEVTOOLS_MUX_* variables."""
        config = cls()
        if version := os.getenv("DEVTOOLS_MUX_PROTOCOL_VERSION"):
            config.protocol_version = version
        if attempts := os.getenv("DEVTOOLS_MUX_ATTACH_ATTEMPTS"):
            config.max_attempts = max(1, int(attempts))
        if delay := os.getenv("DEVTOOLS_MUX_RETRY_DELAY"):
            config.retry_delay = float(delay)
        return config


class Transport:
    """Attach/detach lifecycle and command channel for one target.

    Without an explicit config, settings come from TransportConfig.from_env(),
    the same default ClientPool uses.
    """

    def __init__(
        self,
        target: Target,
        backend: DebuggerBackend,
        config: TransportConfig | None = None,
    ):
        self.target = target
        self.backend = backend
        self.config = config or TransportConfig.from_env()
        self.protocol_version = self.config.protocol_version
        self.attached = False

    async def attach(self) -> None:
        """Attach to the target, retrying on conflicts.

        A conflict (target already attached elsewhere) triggers a detach
        before the next attempt. Any other failure just uses up an attempt.
        Never raises: on exhaustion ``attached`` stays False and the last
        failure is logged.
        """
        if self.attached:
            logger.debug(f"Already attached to {self.target}")
            return

        last_error: BackendError | None = None
        for attempt in range(1, self.config.max_attempts + 1):
            try:
                await self.backend.connect(self.target, self.protocol_version)
                self.attached = True
                logger.info(f"Connected to {self.target}")
                return
            except BackendError as e:
                last_error = e
                logger.debug(f"Attach attempt {attempt} to {self.target} failed: {e}")
                if e.already_attached:
                    await self.detach()
            if self.config.retry_delay and attempt < self.config.max_attempts:
                await asyncio.sleep(self.config.retry_delay)

        logger.error(
            f"Failed to attach to {self.target} after {self.config.max_attempts} attempts: {last_error}"
        )

    async def detach(self) -> None:
        """Release the connection. Safe to call in any state; never raises."""
        try:
            await self.backend.disconnect(self.target)
            logger.info(f"Detached from {self.target}")
        except Exception as e:
            logger.error(f"Unable to detach from {self.target}: {e}")
        finally:
            self.attached = False

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a qualified command (e.g. "Page.enable") and await its reply.

        Raises:
            NotAttachedError: If the transport is not attached
        """
        if not self.attached:
            raise NotAttachedError(f"Must attach debugger before sending commands ({method} to {self.target})")
        return await self.backend.send_command(self.target, method, params)

    def target_matches(self, candidate: Target | None) -> bool:
        """Check whether an event source is this transport's target."""
        if candidate is None:
            return False
        return getattr(candidate, "id", None) == self.target.id

    def __repr__(self) -> str:
        state = "attached" if self.attached else "detached"
        return f"Transport({self.target!r}, {state})"
