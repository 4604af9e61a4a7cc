"""Unit tests for queue topology declaration."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call

import pytest
from aio_pika import ExchangeType

from notification_relay.core.settings import RabbitSettings
from notification_relay.infra.messaging.topology import setup_topology


@pytest.fixture
def handle():
    exchange = MagicMock(name="exchange")
    main_queue = MagicMock(name="main_queue")
    main_queue.name = "process_notification"
    main_queue.bind = AsyncMock()
    dlq = MagicMock(name="dlq")
    dlq.name = "process_notification_dlq"
    dlq.bind = AsyncMock()

    channel = MagicMock(name="channel")
    channel.set_qos = AsyncMock()
    channel.declare_exchange = AsyncMock(return_value=exchange)
    channel.declare_queue = AsyncMock(side_effect=[main_queue, dlq])

    handle = MagicMock(name="handle")
    handle.channel = AsyncMock(return_value=channel)
    return handle


@pytest.mark.unit
class TestSetupTopology:
    """Test suite for setup_topology."""

    @pytest.mark.asyncio
    async def test_declares_durable_exchange_and_queues(self, handle, rabbit_settings):
        topology = await setup_topology(handle, rabbit_settings)
        channel = topology.channel

        channel.declare_exchange.assert_awaited_once_with(
            "process_notification_exchange",
            ExchangeType.DIRECT,
            durable=True,
        )
        assert channel.declare_queue.await_args_list == [
            call("process_notification", durable=True),
            call("process_notification_dlq", durable=True),
        ]

    @pytest.mark.asyncio
    async def test_bindings(self, handle, rabbit_settings):
        topology = await setup_topology(handle, rabbit_settings)

        topology.queue.bind.assert_awaited_once_with(topology.exchange, routing_key="notification")
        topology.dlq.bind.assert_awaited_once_with(topology.exchange, routing_key="dlq")
        assert topology.routing_key == "notification"
        assert topology.dlq_routing_key == "dlq"
        assert topology.queue_name == "process_notification"
        assert topology.dlq_name == "process_notification_dlq"

    @pytest.mark.asyncio
    async def test_qos_prefetch(self, handle):
        topology = await setup_topology(handle, RabbitSettings(prefetch_count=4))

        topology.channel.set_qos.assert_awaited_once_with(prefetch_count=4)

    @pytest.mark.asyncio
    async def test_declaration_error_propagates(self, handle, rabbit_settings):
        channel = await handle.channel()
        channel.declare_exchange.side_effect = RuntimeError("PRECONDITION_FAILED")

        with pytest.raises(RuntimeError, match="PRECONDITION_FAILED"):
            await setup_topology(handle, rabbit_settings)
