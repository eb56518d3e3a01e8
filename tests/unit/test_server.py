"""Unit tests for the embedded server handle."""

import socket

import pytest

from display_launcher.system.server import UvicornServerHandle
from display_launcher.web_interface.app import create_app


@pytest.fixture
def app(launcher):
    """Provide the control API application."""
    return create_app(launcher)


@pytest.mark.unit
class TestUvicornServerHandle:
    """Test starting and stopping the embedded server."""

    def test_not_alive_before_start(self, app):
        """Test a fresh handle reports not alive."""
        assert UvicornServerHandle(app, host="127.0.0.1", port=0).is_alive is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, app):
        """Test the server comes up and goes down cleanly."""
        handle = UvicornServerHandle(app, host="127.0.0.1", port=0)

        await handle.start()
        assert handle.is_alive

        await handle.stop()
        assert not handle.is_alive
        assert handle.sock is None

    @pytest.mark.asyncio
    async def test_port_in_use_raises(self, app):
        """Test a busy port surfaces as OSError."""
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        try:
            port = blocker.getsockname()[1]
            handle = UvicornServerHandle(app, host="127.0.0.1", port=port)

            with pytest.raises(OSError):
                await handle.start()
            assert not handle.is_alive
        finally:
            blocker.close()
