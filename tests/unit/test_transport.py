"""Tests for Transport attach/detach lifecycle and retry policy."""

from __future__ import annotations

import logging

import pytest

from devtools_mux import MockDebuggerBackend, NotAttachedError, Target, Transport, TransportConfig

# =============================================================================
# attach()
# =============================================================================


class TestAttach:
    """Tests for Transport.attach()."""

    @pytest.mark.asyncio
    async def test_attach_success(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """A clean attach connects once and flips the state."""
        assert transport.attached is False

        await transport.attach()

        assert transport.attached is True
        assert backend.connect_calls == [Target(id=1)]
        assert backend.disconnect_calls == []

    @pytest.mark.asyncio
    async def test_always_conflicting_target(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """A permanently busy target gets exactly 5 attempts, each followed by a detach."""
        backend.fail_connect(times=100, already_attached=True)

        await transport.attach()

        assert transport.attached is False
        assert len(backend.connect_calls) == 5
        assert len(backend.disconnect_calls) == 5
        assert [call for call, _ in backend.call_log] == ["connect", "disconnect"] * 5

    @pytest.mark.asyncio
    async def test_conflict_then_success(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """Transient conflicts are absorbed by detach-and-retry."""
        backend.fail_connect(times=2, already_attached=True)

        await transport.attach()

        assert transport.attached is True
        assert len(backend.connect_calls) == 3
        assert len(backend.disconnect_calls) == 2

    @pytest.mark.asyncio
    async def test_other_failures_consume_attempts(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """Non-conflict failures retry without detaching."""
        backend.fail_connect(times=100, already_attached=False)

        await transport.attach()

        assert transport.attached is False
        assert len(backend.connect_calls) == 5
        assert backend.disconnect_calls == []

    @pytest.mark.asyncio
    async def test_exhaustion_is_logged_not_raised(
        self, transport: Transport, backend: MockDebuggerBackend, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Exhausted retries are a soft failure."""
        caplog.set_level(logging.ERROR, logger="devtools_mux.transport")
        backend.fail_connect(times=100, already_attached=False, message="No tab with given id 1.")

        await transport.attach()

        assert any("Failed to attach" in record.message for record in caplog.records)
        assert any("No tab with given id 1." in record.message for record in caplog.records)

    @pytest.mark.asyncio
    async def test_attach_when_attached_is_noop(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """A second attach does not reconnect."""
        await transport.attach()
        await transport.attach()

        assert transport.attached is True
        assert len(backend.connect_calls) == 1

    @pytest.mark.asyncio
    async def test_max_attempts_from_config(self, backend: MockDebuggerBackend) -> None:
        """The retry budget comes from TransportConfig."""
        transport = Transport(Target(id=1), backend, TransportConfig(max_attempts=2))
        backend.fail_connect(times=100)

        await transport.attach()

        assert len(backend.connect_calls) == 2

    @pytest.mark.asyncio
    async def test_retry_delay_between_attempts(
        self, backend: MockDebuggerBackend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Sleeps retry_delay after each failed attempt, then succeeds."""
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("devtools_mux.transport.asyncio.sleep", fake_sleep)
        transport = Transport(Target(id=1), backend, TransportConfig(retry_delay=0.5))
        backend.fail_connect(times=2)

        await transport.attach()

        assert transport.attached is True
        assert sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_no_delay_after_last_attempt(
        self, backend: MockDebuggerBackend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("devtools_mux.transport.asyncio.sleep", fake_sleep)
        transport = Transport(Target(id=1), backend, TransportConfig(max_attempts=3, retry_delay=0.5))
        backend.fail_connect(times=100)

        await transport.attach()

        assert transport.attached is False
        assert len(backend.connect_calls) == 3
        assert sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_zero_delay_never_sleeps(
        self, transport: Transport, backend: MockDebuggerBackend, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        sleeps: list[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("devtools_mux.transport.asyncio.sleep", fake_sleep)
        backend.fail_connect(times=2)

        await transport.attach()

        assert transport.attached is True
        assert sleeps == []


# =============================================================================
# detach()
# =============================================================================


class TestDetach:
    """Tests for Transport.detach()."""

    @pytest.mark.asyncio
    async def test_detach_after_attach(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        await transport.attach()

        await transport.detach()

        assert transport.attached is False
        assert backend.is_attached(Target(id=1)) is False

    @pytest.mark.asyncio
    async def test_detach_never_attached(self, transport: Transport) -> None:
        """Detaching a fresh transport is a harmless no-op."""
        await transport.detach()

        assert transport.attached is False

    @pytest.mark.asyncio
    async def test_detach_twice(self, transport: Transport) -> None:
        await transport.attach()
        await transport.detach()
        await transport.detach()

        assert transport.attached is False

    @pytest.mark.asyncio
    async def test_detach_failure_swallowed(
        self, transport: Transport, backend: MockDebuggerBackend, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Teardown failures are reported and swallowed."""
        caplog.set_level(logging.ERROR, logger="devtools_mux.transport")
        await transport.attach()
        backend.fail_disconnect(message="Detach exploded")

        await transport.detach()

        assert transport.attached is False
        assert any("Detach exploded" in record.message for record in caplog.records)


# =============================================================================
# send() and target_matches()
# =============================================================================


class TestSend:
    """Tests for Transport.send()."""

    @pytest.mark.asyncio
    async def test_send_before_attach_raises(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """Sending on a never-attached transport is a contract violation."""
        with pytest.raises(NotAttachedError, match="Must attach debugger"):
            await transport.send("Page.enable")

        assert backend.recorded_commands == []

    @pytest.mark.asyncio
    async def test_send_after_attach(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        """The same call succeeds once attached."""
        with pytest.raises(NotAttachedError):
            await transport.send("Page.enable")

        await transport.attach()
        reply = await transport.send("Page.enable")

        assert reply == {}
        assert backend.recorded_commands[0].method == "Page.enable"

    @pytest.mark.asyncio
    async def test_send_returns_reply(self, transport: Transport, backend: MockDebuggerBackend) -> None:
        backend.set_response("Runtime.evaluate", {"result": {"type": "number", "value": 2}})
        await transport.attach()

        reply = await transport.send("Runtime.evaluate", {"expression": "1 + 1"})

        assert reply["result"]["value"] == 2
        assert backend.recorded_commands[0].params == {"expression": "1 + 1"}

    @pytest.mark.asyncio
    async def test_send_after_detach_raises(self, transport: Transport) -> None:
        await transport.attach()
        await transport.detach()

        with pytest.raises(NotAttachedError):
            await transport.send("Page.enable")


class TestTargetMatches:
    def test_same_id(self, transport: Transport) -> None:
        assert transport.target_matches(Target(id=1, type="page")) is True

    def test_other_id(self, transport: Transport) -> None:
        assert transport.target_matches(Target(id=2)) is False

    def test_none(self, transport: Transport) -> None:
        assert transport.target_matches(None) is False


# =============================================================================
# TransportConfig
# =============================================================================


class TestTransportConfig:
    def test_defaults(self) -> None:
        config = TransportConfig()

        assert config.protocol_version == "1.3"
        assert config.max_attempts == 5
        assert config.retry_delay == 0.0

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """DEVTOOLS_MUX_* variables override defaults."""
        monkeypatch.setenv("DEVTOOLS_MUX_PROTOCOL_VERSION", "1.1")
        monkeypatch.setenv("DEVTOOLS_MUX_ATTACH_ATTEMPTS", "3")
        monkeypatch.setenv("DEVTOOLS_MUX_RETRY_DELAY", "0.25")

        config = TransportConfig.from_env()

        assert config.protocol_version == "1.1"
        assert config.max_attempts == 3
        assert config.retry_delay == 0.25

    def test_from_env_without_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DEVTOOLS_MUX_PROTOCOL_VERSION", "DEVTOOLS_MUX_ATTACH_ATTEMPTS", "DEVTOOLS_MUX_RETRY_DELAY"):
            monkeypatch.delenv(name, raising=False)

        assert TransportConfig.from_env() == TransportConfig()

    def test_transport_uses_config_version(self, backend: MockDebuggerBackend) -> None:
        transport = Transport(Target(id=1), backend, TransportConfig(protocol_version="1.1"))

        assert transport.protocol_version == "1.1"

    def test_transport_defaults_to_env(self, backend: MockDebuggerBackend, monkeypatch: pytest.MonkeyPatch) -> None:
        """A bare Transport picks up DEVTOOLS_MUX_* like the pool does."""
        monkeypatch.setenv("DEVTOOLS_MUX_PROTOCOL_VERSION", "1.2")
        monkeypatch.setenv("DEVTOOLS_MUX_ATTACH_ATTEMPTS", "2")

        transport = Transport(Target(id=1), backend)

        assert transport.protocol_version == "1.2"
        assert transport.config.max_attempts == 2
