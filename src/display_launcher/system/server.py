"""Embedded HTTP server handle.

Runs the control API on uvicorn inside the service's own event loop so the
service can start, check and restart it.
"""

import asyncio
import contextlib
import logging
import socket
from typing import Iterator, Optional, Protocol

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


class ServerStartError(Exception):
    """Raised when the server exits before finishing startup."""


class ServerHandle(Protocol):
    """Anything the launcher service can start, stop and check."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    @property
    def is_alive(self) -> bool: ...


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the owning service."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class UvicornServerHandle:
    """Serves a FastAPI app with uvicorn on a pre-bound socket."""

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 9091,
        startup_timeout_sec: float = 10.0,
        shutdown_timeout_sec: float = 5.0,
    ) -> None:
        """Initialize server handle.

        Args:
            app: Application to serve
            host: Host to bind to
            port: Port to listen on
            startup_timeout_sec: Time allowed for uvicorn startup
            shutdown_timeout_sec: Time allowed for graceful shutdown
        """
        self.app = app
        self.host = host
        self.port = port
        self.startup_timeout_sec = startup_timeout_sec
        self.shutdown_timeout_sec = shutdown_timeout_sec

        self.server: Optional[_EmbeddedServer] = None
        self.task: Optional[asyncio.Task] = None
        self.sock: Optional[socket.socket] = None

    def _bind(self) -> socket.socket:
        """Bind the listening socket.

        Binding here turns "address in use" into an OSError the service can
        retry, instead of uvicorn's process exit.
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        """Bind, start serving and wait for uvicorn startup.

        Raises:
            OSError: If the port cannot be bound
            ServerStartError: If uvicorn exits or stalls during startup
        """
        self.sock = self._bind()
        config = uvicorn.Config(
            self.app,
            log_level="info",
            access_log=True,
            log_config=None,
        )
        self.server = _EmbeddedServer(config)
        self.task = asyncio.create_task(self.server.serve(sockets=[self.sock]))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.startup_timeout_sec
        while not self.server.started:
            if self.task.done():
                await self._release()
                raise ServerStartError("Web server exited during startup")
            if loop.time() > deadline:
                await self.stop()
                raise ServerStartError("Web server startup timed out")
            await asyncio.sleep(0.05)

        logger.info(f"Web server listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop serving and release the socket."""
        if self.server is not None:
            self.server.should_exit = True
        if self.task is not None and not self.task.done():
            try:
                await asyncio.wait_for(self.task, timeout=self.shutdown_timeout_sec)
            except asyncio.TimeoutError:
                logger.warning("Web server did not stop in time, cancelling")
                self.task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.task
        await self._release()

    async def _release(self) -> None:
        if self.task is not None and self.task.done() and not self.task.cancelled():
            error = self.task.exception()
            if error is not None:
                logger.error(f"Web server task failed: {error}")
        if self.sock is not None:
            self.sock.close()
            self.sock = None

    @property
    def is_alive(self) -> bool:
        return (
            self.server is not None
            and self.task is not None
            and not self.task.done()
            and self.server.started
            and not self.server.should_exit
        )
