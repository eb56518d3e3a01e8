"""Unit tests for the launcher service supervisor."""

import asyncio
from typing import List

import pytest

from display_launcher.config.loader import LauncherConfig
from display_launcher.system.launcher_service import LauncherService
from display_launcher.system.restart_policy import RestartPolicy
from display_launcher.system.shutdown_handler import ShutdownHandler


class FakeServer:
    """Server handle that can be told to fail on start."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        if self.fail:
            raise OSError("Address already in use")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True
        self.started = False

    @property
    def is_alive(self) -> bool:
        return self.started and not self.stopped


class ServerFactory:
    """Creates servers, failing the first ``failures`` of them."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.created: List[FakeServer] = []

    def __call__(self) -> FakeServer:
        server = FakeServer(fail=len(self.created) < self.failures)
        self.created.append(server)
        return server


class RecordingSleep:
    """Sleep stand-in that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_service(launcher, factory, max_attempts=5, backoff_sec=5.0, multiplier=1.0):
    config = LauncherConfig(
        restart=RestartPolicy(
            max_attempts=max_attempts,
            backoff_sec=backoff_sec,
            backoff_multiplier=multiplier,
        ),
        monitor_interval_sec=3600,
    )
    sleep = RecordingSleep()
    service = LauncherService(config, launcher, server_factory=factory, sleep=sleep)
    return service, sleep


@pytest.mark.unit
class TestStartServer:
    """Test bounded server (re)starts."""

    @pytest.mark.asyncio
    async def test_start_first_try(self, launcher):
        """Test a healthy server starts without backoff."""
        factory = ServerFactory()
        service, sleep = make_service(launcher, factory)

        assert await service.start_server() is True
        assert service.server is factory.created[0]
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self, launcher):
        """Test failures are retried after the policy delay."""
        factory = ServerFactory(failures=2)
        service, sleep = make_service(launcher, factory)

        assert await service.start_server() is True
        assert len(factory.created) == 3
        assert sleep.delays == [5.0, 5.0]
        assert service.restart_budget.attempts == 0

    @pytest.mark.asyncio
    async def test_exponential_backoff(self, launcher):
        """Test the multiplier grows the delay between retries."""
        factory = ServerFactory(failures=3)
        service, sleep = make_service(launcher, factory, backoff_sec=1.0, multiplier=2.0)

        assert await service.start_server() is True
        assert sleep.delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, launcher, caplog):
        """Test a persistently failing server stops being retried."""
        factory = ServerFactory(failures=100)
        service, sleep = make_service(launcher, factory, max_attempts=3)

        assert await service.start_server() is False
        assert len(factory.created) == 4
        assert len(sleep.delays) == 3
        assert service.server is None
        assert "Max restart attempts reached" in caplog.text

    @pytest.mark.asyncio
    async def test_restart_stops_previous_server(self, launcher):
        """Test a restart releases the old server first."""
        factory = ServerFactory()
        service, _ = make_service(launcher, factory)
        await service.start_server()
        first = factory.created[0]

        await service.start_server()

        assert first.stopped
        assert service.server is factory.created[1]


@pytest.mark.unit
class TestCheckServer:
    """Test liveness checks."""

    @pytest.mark.asyncio
    async def test_alive_server_left_alone(self, launcher):
        """Test a running server is not restarted."""
        factory = ServerFactory()
        service, _ = make_service(launcher, factory)
        await service.start_server()

        assert await service.check_server() is True
        assert len(factory.created) == 1

    @pytest.mark.asyncio
    async def test_dead_server_restarted(self, launcher):
        """Test a dead server is replaced."""
        factory = ServerFactory()
        service, _ = make_service(launcher, factory)
        await service.start_server()
        factory.created[0].started = False

        assert await service.check_server() is True
        assert len(factory.created) == 2
        assert service.server.is_alive


@pytest.mark.unit
class TestLifecycle:
    """Test service start and stop."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, launcher):
        """Test background tasks are created and cancelled."""
        factory = ServerFactory()
        service, _ = make_service(launcher, factory)

        assert await service.start() is True
        assert service.running
        assert len(service._tasks) == 2

        await service.stop()

        assert not service.running
        assert service._tasks == []
        assert service.server is None
        assert factory.created[0].stopped

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, launcher):
        """Test stopping twice is harmless."""
        service, _ = make_service(launcher, ServerFactory())
        await service.start()

        await service.stop()
        await service.stop()

        assert not service.running

    @pytest.mark.asyncio
    async def test_start_sweeps_stale_artifacts(self, launcher, monkeypatch):
        """Test a sweep runs before the server starts."""
        calls = []
        monkeypatch.setattr(launcher, "sweep_stale_artifacts", lambda: calls.append(1) or 0)
        service, _ = make_service(launcher, ServerFactory())

        await service.start()
        await service.stop()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_run_until_shutdown_requested(self, launcher):
        """Test run returns once shutdown is requested and stops the service."""
        factory = ServerFactory()
        handler = ShutdownHandler()
        config = LauncherConfig(monitor_interval_sec=3600)
        service = LauncherService(config, launcher, server_factory=factory,
                                  shutdown_handler=handler)

        task = asyncio.create_task(service.run())
        while not service.running:
            await asyncio.sleep(0)
        handler.request_shutdown()
        await asyncio.wait_for(task, timeout=5)

        assert handler.is_shutting_down
        assert not service.running
        assert factory.created[0].stopped

