"""Unit tests for NotificationRelay startup, run and shutdown."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notification_relay.core.exceptions import ConfigurationException
from notification_relay.core.settings import RabbitSettings, Settings
from notification_relay.infra.messaging.relay import NotificationRelay


@pytest.fixture
def handle():
    handle = MagicMock(name="handle")
    handle.close = AsyncMock()
    return handle


@pytest.fixture
def connection_manager(handle):
    manager = MagicMock(name="connection_manager")
    manager.connect = AsyncMock(return_value=handle)
    return manager


@pytest.fixture
def settings(rabbit_settings, firebase_settings):
    return Settings(rabbit=rabbit_settings, firebase=firebase_settings)


@pytest.fixture
def relay(settings, push_client, connection_manager):
    return NotificationRelay(
        settings,
        push_client=push_client,
        connection_manager=connection_manager,
        callbacks=AsyncMock(),
    )


@pytest.mark.unit
class TestRelayStart:
    """Test suite for NotificationRelay.start."""

    @pytest.mark.asyncio
    async def test_start_order(self, relay, push_client, connection_manager, handle, topology):
        order: list[str] = []
        push_client.initialize.side_effect = lambda: order.append("push") or True
        connection_manager.connect.side_effect = lambda: order.append("connect") or handle
        topology.queue.consume.side_effect = lambda *a, **kw: order.append("consume") or "ctag-1"

        async def fake_setup(h, s):
            order.append("topology")
            return topology

        with patch("notification_relay.infra.messaging.relay.setup_topology", side_effect=fake_setup):
            await relay.start()

        assert order == ["push", "connect", "topology", "consume"]
        assert relay.loop is not None
        assert relay.loop.max_retries == 3

    @pytest.mark.asyncio
    async def test_missing_configuration_stops_before_connecting(
        self, firebase_settings, push_client, connection_manager
    ):
        relay = NotificationRelay(
            Settings(rabbit=RabbitSettings(), firebase=firebase_settings),
            push_client=push_client,
            connection_manager=connection_manager,
            callbacks=AsyncMock(),
        )

        with pytest.raises(ConfigurationException, match="RABBITMQ"):
            await relay.start()

        connection_manager.connect.assert_not_awaited()
        push_client.initialize.assert_not_called()

    @pytest.mark.asyncio
    async def test_push_init_failure_does_not_block_start(self, relay, push_client, topology):
        push_client.initialize.return_value = False

        with patch("notification_relay.infra.messaging.relay.setup_topology", AsyncMock(return_value=topology)):
            await relay.start()

        topology.queue.consume.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_failure_propagates(self, relay, connection_manager):
        connection_manager.connect.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError, match="refused"):
            await relay.start()


@pytest.mark.unit
class TestRelayRun:
    """Test suite for NotificationRelay.run and shutdown."""

    @pytest.mark.asyncio
    async def test_stop_request_shuts_down(self, relay, handle, push_client, topology):
        relay.request_stop()

        with patch("notification_relay.infra.messaging.relay.setup_topology", AsyncMock(return_value=topology)):
            await relay.run()

        topology.queue.cancel.assert_awaited_once_with("ctag-1")
        handle.close.assert_awaited_once()
        push_client.close.assert_called_once()
        assert relay.handle is None
        assert relay.loop is None

    @pytest.mark.asyncio
    async def test_loop_failure_shuts_down_and_raises(self, relay, handle, topology, make_message):
        topology.channel.default_exchange.publish.side_effect = ConnectionError("channel closed")
        pending: list[asyncio.Task] = []

        async def consume(callback, no_ack):
            pending.append(asyncio.create_task(callback(make_message(raw=b"garbage"))))
            return "ctag-1"

        topology.queue.consume.side_effect = consume

        with patch("notification_relay.infra.messaging.relay.setup_topology", AsyncMock(return_value=topology)):
            with pytest.raises(ConnectionError, match="channel closed"):
                await asyncio.wait_for(relay.run(), timeout=5)

        handle.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_before_start_raises(self, relay):
        with pytest.raises(RuntimeError, match="not been started"):
            await relay._wait()

    @pytest.mark.asyncio
    async def test_shutdown_without_start(self, relay, push_client):
        await relay.shutdown()

        push_client.close.assert_called_once()
