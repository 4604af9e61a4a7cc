"""Relay service wiring the broker pipeline to notification delivery.

Startup order: configuration check, push client, connection, topology,
consumption. Shutdown runs in reverse once SIGINT/SIGTERM arrives or the
consumption loop breaks.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from notification_relay.core.settings import validate_runtime_settings
from notification_relay.features.notifications.callbacks import DeliveryCallbackClient
from notification_relay.features.notifications.dispatcher import NotificationDispatcher
from notification_relay.features.notifications.service import NotificationService
from notification_relay.infra.messaging.connection import ConnectionHandle, ConnectionManager
from notification_relay.infra.messaging.consumer import ConsumptionLoop
from notification_relay.infra.messaging.topology import setup_topology
from notification_relay.infra.push import FirebasePushClient

if TYPE_CHECKING:
    from notification_relay.core.settings import Settings
    from notification_relay.infra.messaging.topology import QueueTopology

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class NotificationRelay:
    """Owns every long-lived resource of a running relay.

    Collaborators can be injected for tests; by default they are built from
    ``settings``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        push_client: FirebasePushClient | None = None,
        connection_manager: ConnectionManager | None = None,
        callbacks: DeliveryCallbackClient | None = None,
    ) -> None:
        self.settings = settings
        self.push_client = push_client or FirebasePushClient(settings.firebase)
        self._connection_manager = connection_manager
        self._callbacks = callbacks or DeliveryCallbackClient(timeout=settings.app.callback_timeout)
        self.service = NotificationService(
            NotificationDispatcher.from_settings(self.push_client, settings.firebase),
            self._callbacks,
        )
        self.handle: ConnectionHandle | None = None
        self.topology: QueueTopology | None = None
        self.loop: ConsumptionLoop | None = None
        self._stop = asyncio.Event()

    def _build_connection_manager(self) -> ConnectionManager:
        rabbit = self.settings.rabbit
        return ConnectionManager(
            rabbit.get_url(),
            rabbit.connect_max_retries,
            connection_name=rabbit.connection_name,
            heartbeat=rabbit.heartbeat,
        )

    async def start(self) -> None:
        """Bring the pipeline up and start consuming.

        Raises:
            ConfigurationException: If required settings are missing.
            Exception: The last connection error once retries are exhausted,
                or any topology declaration error.
        """
        validate_runtime_settings(self.settings.rabbit, self.settings.firebase)

        if not self.push_client.initialize():
            logger.error("Push client not initialized, deliveries will report failure")

        manager = self._connection_manager or self._build_connection_manager()
        self.handle = await manager.connect()
        self.topology = await setup_topology(self.handle, self.settings.rabbit)

        self.loop = ConsumptionLoop(
            self.topology,
            self.settings.rabbit.max_retries,
            graceful_timeout=self.settings.rabbit.graceful_timeout,
        )
        await self.loop.start(self.service.process)
        logger.info("Notification relay started")

    def request_stop(self) -> None:
        if not self._stop.is_set():
            logger.info("Shutdown requested")
            self._stop.set()

    async def run(self) -> None:
        """Run until a shutdown signal arrives.

        Raises:
            Exception: Whatever broke the consumption loop, after shutdown.
        """
        self._install_signal_handlers()
        failure: BaseException | None = None
        try:
            await self.start()
            failure = await self._wait()
        finally:
            await self.shutdown()
            self._remove_signal_handlers()

        if failure is not None:
            raise failure

    async def _wait(self) -> BaseException | None:
        if self.loop is None:
            raise RuntimeError("Notification relay has not been started")
        stop_task = asyncio.create_task(self._stop.wait())
        failed_task = asyncio.create_task(self.loop.wait_failed())
        done, pending = await asyncio.wait({stop_task, failed_task}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if failed_task in done:
            return failed_task.result()
        return None

    async def shutdown(self) -> None:
        """Stop consuming, close channel and connection, release the push app."""
        if self.loop is not None:
            await self.loop.stop()
            self.loop = None
        if self.handle is not None:
            handle, self.handle = self.handle, None
            await handle.close()
        self.topology = None
        self.push_client.close()
        logger.info("Notification relay stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except NotImplementedError:
                # add_signal_handler is unavailable on Windows event loops
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(self._on_signal, signum))

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)

    def _on_signal(self, signum: int) -> None:
        logger.info("Received %s, shutting down gracefully", signal.Signals(signum).name)
        self.request_stop()
