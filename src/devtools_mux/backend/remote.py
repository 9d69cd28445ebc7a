"""Backend for a browser exposing the DevTools remote-debugging port.

Uses one browser-level WebSocket for every target. Each attached target
gets a flattened session; commands carry its ``sessionId`` and inbound
events are mapped back to their Target before being published.

Discovery:
- GET /json/version  - browser WebSocket URL and protocol version
- GET /json/protocol - protocol descriptor

Wire format (JSON text frames):
- Commands: {id, method, params, sessionId?}
- Replies: {id, result} or {id, error: {code, message}}
- Events: {method, params, sessionId?}
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from ..bus import EventBus
from ..errors import ALREADY_ATTACHED_PREFIX, BackendError, ProtocolError
from ..protocol.descriptor import ProtocolDescriptor
from ..target import Target, TargetInfo

logger = logging.getLogger(__name__)


@dataclass
class RemoteBackendConfig:
    """Settings for the remote-debugging backend."""

    base_url: str = "http://localhost:9222"
    # Seconds to wait for HTTP discovery and for each command reply
    timeout: float = 30.0
    ping_interval: float | None = 20.0

    @classmethod
    def from_env(cls) -> RemoteBackendConfig:
        config = cls()
        if base_url := os.getenv("DEVTOOLS_MUX_BASE_URL"):
            config.base_url = base_url.rstrip("/")
        if timeout := os.getenv("DEVTOOLS_MUX_TIMEOUT"):
            config.timeout = float(timeout)
        return config


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for part in version.split("."):
        try:
            parts.append(int(part))
        except ValueError:
            break
    return tuple(parts)


class RemoteDebuggingBackend:
    """DebuggerBackend over the DevTools remote-debugging endpoint.

    Usage:
        async with RemoteDebuggingBackend() as backend:
            protocol = await backend.fetch_protocol()
            pool = ClientPool(protocol, backend)
            targets = [info.target for info in await backend.list_targets()]
            client = await pool.attach(targets[0])
    """

    def __init__(
        self,
        config: RemoteBackendConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or RemoteBackendConfig.from_env()
        self._events = EventBus()
        self._http = http_client
        self._owns_http = http_client is None
        self._ws: Any = None  # websockets client connection
        self._reader_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._next_id = 0
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._sessions: dict[Target, str] = {}
        self._targets_by_session: dict[str, Target] = {}
        self.protocol_version: str | None = None

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def session_id(self, target: Target) -> str | None:
        """Session id of an attached target."""
        return self._sessions.get(target)

    # HTTP discovery

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self.config.base_url, timeout=self.config.timeout)
        return self._http

    async def _get_json(self, path: str) -> Any:
        try:
            response = await self._http_client().get(path)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"Browser not reachable at {self.config.base_url}: {e}") from e
        return response.json()

    async def fetch_protocol(self) -> ProtocolDescriptor:
        """Download the protocol descriptor the browser speaks."""
        return ProtocolDescriptor.from_dict(await self._get_json("/json/protocol"))

    # Browser connection lifecycle

    async def open(self) -> None:
        """Connect to the browser-level WebSocket. No-op when already open."""
        async with self._lock:
            if self._ws is not None:
                return

            version = await self._get_json("/json/version")
            ws_url = version.get("webSocketDebuggerUrl")
            if not ws_url:
                raise BackendError("Browser did not report a webSocketDebuggerUrl")
            self.protocol_version = version.get("Protocol-Version")

            try:
                self._ws = await websockets.connect(
                    ws_url,
                    ping_interval=self.config.ping_interval,
                    max_size=None,
                )
            except (OSError, InvalidHandshake) as e:
                raise BackendError(f"Failed to connect to {ws_url}: {e}") from e

            self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"Connected to browser at {ws_url} (protocol {self.protocol_version})")

    async def close(self) -> None:
        """Close the browser connection and fail any pending commands."""
        async with self._lock:
            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None

            if self._ws is not None:
                await self._ws.close()
                self._ws = None
                logger.info("Browser connection closed")

            self._fail_pending("Browser connection closed")
            self._sessions.clear()
            self._targets_by_session.clear()

            if self._owns_http and self._http is not None:
                await self._http.aclose()
                self._http = None

    async def __aenter__(self) -> RemoteDebuggingBackend:
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # DebuggerBackend primitives

    async def connect(self, target: Target, protocol_version: str) -> None:
        await self.open()
        if self.protocol_version and _version_tuple(protocol_version) > _version_tuple(self.protocol_version):
            raise BackendError(f"Requested protocol version is not supported: {protocol_version}.")
        if target in self._sessions:
            raise BackendError.from_message(f"{ALREADY_ATTACHED_PREFIX} to the target with id: {target.id}.")

        result = await self._call("Target.attachToTarget", {"targetId": target.id, "flatten": True})
        session_id = result["sessionId"]
        self._sessions[target] = session_id
        self._targets_by_session[session_id] = target

    async def disconnect(self, target: Target) -> None:
        session_id = self._sessions.pop(target, None)
        if session_id is None:
            raise BackendError(f"Debugger is not attached to the target with id: {target.id}.")
        self._targets_by_session.pop(session_id, None)
        await self._call("Target.detachFromTarget", {"sessionId": session_id})

    async def send_command(
        self, target: Target, method: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        session_id = self._sessions.get(target)
        if session_id is None:
            raise BackendError(f"Debugger is not attached to the target with id: {target.id}.")
        return await self._call(method, params, session_id=session_id)

    async def list_targets(self) -> list[TargetInfo]:
        await self.open()
        result = await self._call("Target.getTargets")
        return [
            TargetInfo(target=Target.from_target_info(info), attached=bool(info.get("attached", False)))
            for info in result.get("targetInfos", [])
        ]

    # Wire helpers

    async def _call(
        self, method: str, params: dict[str, Any] | None = None, session_id: str | None = None
    ) -> dict[str, Any]:
        """Send one message and wait for the reply with the same id."""
        if self._ws is None:
            raise BackendError("Not connected to the browser")

        self._next_id += 1
        message_id = self._next_id
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[message_id] = future

        message: dict[str, Any] = {"id": message_id, "method": method, "params": params or {}}
        if session_id is not None:
            message["sessionId"] = session_id

        try:
            await self._ws.send(json.dumps(message))
            reply = await asyncio.wait_for(future, timeout=self.config.timeout)
        except ConnectionClosed as e:
            raise BackendError(f"Browser connection closed while sending {method}") from e
        except TimeoutError as e:
            raise BackendError(f"{method} timed out after {self.config.timeout}s") from e
        finally:
            self._pending.pop(message_id, None)

        if "error" in reply:
            error = reply["error"]
            raise ProtocolError(method, error.get("code"), error.get("message", ""))
        return reply.get("result", {})

    async def _read_loop(self) -> None:
        """Background task routing replies and events."""
        ws = self._ws
        try:
            async for raw in ws:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping non-JSON frame: {str(raw)[:50]}")
                    continue
                self._route(message)
        except asyncio.CancelledError:
            # close() owns teardown
            self._fail_pending("Browser connection closed")
            return
        except ConnectionClosed as e:
            logger.info(f"Browser connection lost: {e}")
        except Exception as e:
            logger.error(f"Read loop error: {e}")
        else:
            logger.info("Browser connection lost")
        self._on_connection_lost(ws)

    def _on_connection_lost(self, ws: Any) -> None:
        """Forget the dead socket and its sessions so the next call reconnects."""
        if self._ws is ws:
            self._ws = None
            self._reader_task = None
        self._fail_pending("Browser connection lost")
        self._sessions.clear()
        self._targets_by_session.clear()

    def _route(self, message: dict[str, Any]) -> None:
        if "id" in message:
            future = self._pending.get(message["id"])
            if future is not None and not future.done():
                future.set_result(message)
            return

        method = message.get("method")
        if not method:
            return
        params = message.get("params") or {}

        if method == "Target.detachedFromTarget":
            # The browser ended a session (tab closed, another client took over)
            target = self._targets_by_session.pop(params.get("sessionId"), None)
            if target is not None:
                self._sessions.pop(target, None)
                logger.info(f"Browser detached session for {target}")

        session_id = message.get("sessionId")
        target = self._targets_by_session.get(session_id) if session_id else None
        if target is None:
            # Browser-level event or a session we do not own
            return

        # Scheduled, not awaited: listeners may send commands whose replies
        # this loop still has to read.
        self._events.publish_nowait(target, method, params)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(BackendError(reason))
        self._pending.clear()
