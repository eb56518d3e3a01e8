"""Graceful shutdown handler.

Turns SIGINT/SIGTERM into an awaitable event and runs registered cleanup
callbacks once, in registration order.
"""

import asyncio
import inspect
import logging
import signal
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ShutdownHandler:
    """Handles graceful shutdown of the service."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self) -> None:
        """Initialize shutdown handler."""
        self.shutdown_callbacks: List[Callable] = []
        self.is_shutting_down = False
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def shutdown_event(self) -> asyncio.Event:
        # Created lazily so it binds to the loop that waits on it
        if self._shutdown_event is None:
            self._shutdown_event = asyncio.Event()
        return self._shutdown_event

    def register_callback(self, callback: Callable) -> None:
        """Register a shutdown callback.

        Args:
            callback: Sync or async function to call on shutdown
        """
        self.shutdown_callbacks.append(callback)
        logger.debug(f"Registered shutdown callback: {callback.__name__}")

    def setup_signal_handlers(self) -> None:
        """Install signal handlers on the running event loop."""
        loop = asyncio.get_running_loop()
        for sig in self.SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                logger.warning(f"Cannot install handler for {sig.name}")
        logger.info("Signal handlers configured")

    def request_shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """Ask the service to shut down.

        Args:
            sig: Signal that triggered the request, if any
        """
        if sig is not None:
            logger.info(f"Received signal: {signal.Signals(sig).name}")
        self.shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        """Block until shutdown is requested."""
        await self.shutdown_event.wait()

    async def shutdown(self) -> None:
        """Execute graceful shutdown sequence."""
        if self.is_shutting_down:
            logger.info("Shutdown already in progress")
            return

        logger.info("Starting graceful shutdown...")
        self.is_shutting_down = True

        for callback in self.shutdown_callbacks:
            try:
                logger.info(f"Executing shutdown callback: {callback.__name__}")
                if inspect.iscoroutinefunction(callback):
                    await callback()
                else:
                    callback()
            except Exception as e:
                logger.error(f"Error in shutdown callback {callback.__name__}: {e}",
                             exc_info=True)

        logger.info("Graceful shutdown complete")
