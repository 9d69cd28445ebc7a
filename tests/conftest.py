"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from devtools_mux import (
    ClientPool,
    MockDebuggerBackend,
    ProtocolDescriptor,
    Target,
    Transport,
    TransportConfig,
)

# Trimmed-down browser_protocol.json
PROTOCOL: dict[str, Any] = {
    "version": {"major": "1", "minor": "3"},
    "domains": [
        {
            "domain": "Page",
            "dependencies": ["Debugger", "DOM"],
            "commands": [{"name": "enable"}, {"name": "navigate"}, {"name": "reload"}],
            "events": [{"name": "loadEventFired"}, {"name": "frameResized"}],
        },
        {
            "domain": "Runtime",
            "commands": [{"name": "enable"}, {"name": "evaluate"}],
            "events": [{"name": "consoleAPICalled"}],
        },
        {
            # No events
            "domain": "Browser",
            "commands": [{"name": "getVersion"}],
        },
    ],
}


@pytest.fixture
def protocol_data() -> dict[str, Any]:
    """Raw descriptor JSON, safe to mutate."""
    return copy.deepcopy(PROTOCOL)


@pytest.fixture
def protocol() -> ProtocolDescriptor:
    return ProtocolDescriptor.from_dict(PROTOCOL)


@pytest.fixture
def backend() -> MockDebuggerBackend:
    return MockDebuggerBackend()


@pytest.fixture
def config() -> TransportConfig:
    """Defaults, independent of DEVTOOLS_MUX_* in the environment."""
    return TransportConfig()


@pytest.fixture
def transport(backend: MockDebuggerBackend, config: TransportConfig) -> Transport:
    return Transport(Target(id=1), backend, config)


@pytest.fixture
def pool(protocol: ProtocolDescriptor, backend: MockDebuggerBackend, config: TransportConfig) -> ClientPool:
    return ClientPool(protocol, backend, config)
