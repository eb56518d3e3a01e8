"""Launcher control service.

Keeps the control API server running: starts it through a bounded restart
budget, checks it periodically and restarts it when it has died, and sweeps
stale install artifacts in the background.

Example:
    >>> service = LauncherService(config, launcher)
    >>> await service.run()
"""

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

from display_launcher.gateway.launcher import AppLauncher
from display_launcher.system.restart_policy import RestartBudget
from display_launcher.system.server import ServerHandle, UvicornServerHandle
from display_launcher.system.shutdown_handler import ShutdownHandler
from display_launcher.web_interface.app import create_app

if TYPE_CHECKING:
    from display_launcher.config.loader import LauncherConfig

logger = logging.getLogger(__name__)


class LauncherService:
    """Supervises the control API server and background maintenance."""

    def __init__(
        self,
        config: "LauncherConfig",
        launcher: AppLauncher,
        server_factory: Optional[Callable[[], ServerHandle]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        shutdown_handler: Optional[ShutdownHandler] = None,
    ) -> None:
        """Initialize launcher service.

        Args:
            config: Service configuration
            launcher: Gateway the control API delegates to
            server_factory: Creates a fresh server per (re)start
            sleep: Awaitable used for restart backoff
            shutdown_handler: Signal-driven shutdown coordination
        """
        self.config = config
        self.launcher = launcher
        self.server_factory = server_factory or self._default_server_factory
        self.sleep = sleep
        self.shutdown_handler = shutdown_handler or ShutdownHandler()

        self.restart_budget = RestartBudget(config.restart)
        self.server: Optional[ServerHandle] = None
        self.running = False
        self._tasks: List[asyncio.Task] = []
        self._restart_lock = asyncio.Lock()

    def _default_server_factory(self) -> ServerHandle:
        return UvicornServerHandle(
            create_app(self.launcher),
            host=self.config.host,
            port=self.config.port,
        )

    async def start(self) -> bool:
        """Start the server and background tasks.

        Returns:
            True if the server came up within the restart budget
        """
        logger.info("Starting launcher service")
        self.running = True

        self.launcher.sweep_stale_artifacts()
        started = await self.start_server()

        self._tasks = [
            asyncio.create_task(self._monitor_loop()),
            asyncio.create_task(self._sweep_loop()),
        ]
        return started

    async def start_server(self) -> bool:
        """(Re)start the server, retrying per the restart policy.

        Returns:
            True if the server started, False once retries are exhausted
        """
        async with self._restart_lock:
            while True:
                try:
                    await self._stop_server()
                    server = self.server_factory()
                    await server.start()
                except Exception as e:
                    logger.error(f"Failed to start web server: {e}", exc_info=True)
                    delay = self.restart_budget.record_failure()
                    if delay is None:
                        logger.error(
                            "Max restart attempts reached. Service may need manual restart."
                        )
                        return False
                    logger.info(
                        f"Retrying web server start in {delay:.1f}s "
                        f"(attempt {self.restart_budget.attempts}/"
                        f"{self.restart_budget.policy.max_attempts})"
                    )
                    await self.sleep(delay)
                    continue

                self.server = server
                self.restart_budget.reset()
                logger.info("Web server started successfully")
                return True

    async def _stop_server(self) -> None:
        if self.server is None:
            return
        try:
            await self.server.stop()
            logger.info("Web server stopped")
        except Exception as e:
            logger.error(f"Error stopping web server: {e}", exc_info=True)
        finally:
            self.server = None

    async def check_server(self) -> bool:
        """Restart the server if it is not running.

        Returns:
            True if the server is alive after the check
        """
        if self.server is not None and self.server.is_alive:
            return True
        logger.warning("Web server is not running. Attempting restart...")
        return await self.start_server()

    async def _monitor_loop(self) -> None:
        while self.running:
            await asyncio.sleep(self.config.monitor_interval_sec)
            try:
                await self.check_server()
            except Exception as e:
                logger.error(f"Error in server monitoring: {e}", exc_info=True)

    async def _sweep_loop(self) -> None:
        while self.running:
            await asyncio.sleep(self.config.staging.sweep_interval_sec)
            self.launcher.sweep_stale_artifacts()

    async def stop(self) -> None:
        """Stop background tasks and the server."""
        if not self.running and self.server is None:
            return
        logger.info("Stopping launcher service")
        self.running = False

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []

        await self._stop_server()
        logger.info("Launcher service stopped")

    async def run(self) -> None:
        """Run until a shutdown signal arrives."""
        self.shutdown_handler.setup_signal_handlers()
        self.shutdown_handler.register_callback(self.stop)

        try:
            await self.start()
            await self.shutdown_handler.wait_for_shutdown()
        finally:
            await self.shutdown_handler.shutdown()
