"""Integration tests for the live-reload server on a real socket."""

import asyncio
import json
import socket
from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
from livereload.handlers import LiveReloadHandler
from tornado.websocket import websocket_connect

from specbuild.errors import ServerStartError
from specbuild.observability.metrics import BuildMetrics
from specbuild.state_machine import ServerState
from specbuild.tasks.serve import LiveReloadServer


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output root holding a rendered document."""
    root = tmp_path / "build"
    root.mkdir()
    (root / "index.html").write_text(
        "<html><head></head><body><h1>Live Spec</h1></body></html>",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def server(output_dir: Path) -> Iterator[LiveReloadServer]:
    """A running server on a free port."""
    server = LiveReloadServer(output_dir, port=free_port(), metrics=BuildMetrics())
    server.start().result(timeout=10)
    yield server
    server.stop()
    LiveReloadHandler.waiters.clear()


class TestLiveReloadServer:
    """Serving and notification over real connections."""

    def test_serves_output_root(self, server: LiveReloadServer) -> None:
        """The rendered document is served at the root URL."""
        assert server.state == ServerState.SERVING

        response = httpx.get(server.url, timeout=5)

        assert response.status_code == 200
        assert "Live Spec" in response.text

    def test_stop(self, output_dir: Path) -> None:
        """A stopped server no longer accepts connections."""
        server = LiveReloadServer(output_dir, port=free_port(), metrics=BuildMetrics())
        server.start().result(timeout=10)

        server.stop()

        assert server.state == ServerState.STOPPED
        with pytest.raises(httpx.TransportError):
            httpx.get(server.url, timeout=2)

    def test_port_in_use_fails_start(self, output_dir: Path) -> None:
        """Binding an occupied port fails the start future."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen()
            port = blocker.getsockname()[1]

            server = LiveReloadServer(output_dir, port=port, metrics=BuildMetrics())
            with pytest.raises(ServerStartError) as exc_info:
                server.start().result(timeout=10)
            server.stop()

        assert exc_info.value.port == port
        assert server.state == ServerState.FAILED

    def test_connected_client_receives_reload(
        self, server: LiveReloadServer, output_dir: Path
    ) -> None:
        """After the LiveReload handshake a client receives reload commands."""
        ws_url = server.url.replace("http://", "ws://") + "livereload"
        changed = str((output_dir / "index.html").resolve())

        async def session() -> dict[str, object]:
            conn = await websocket_connect(ws_url)
            try:
                await conn.write_message(
                    json.dumps(
                        {
                            "command": "hello",
                            "protocols": ["http://livereload.com/protocols/official-7"],
                        }
                    )
                )
                hello = json.loads(await conn.read_message())
                assert hello["command"] == "hello"

                await conn.write_message(
                    json.dumps({"command": "info", "url": server.url})
                )
                for _ in range(100):
                    if LiveReloadHandler.waiters:
                        break
                    await asyncio.sleep(0.05)

                server.notify(changed)
                return json.loads(await asyncio.wait_for(conn.read_message(), 5))
            finally:
                conn.close()

        message = asyncio.run(session())

        assert message == {
            "command": "reload",
            "path": changed,
            "liveCSS": True,
            "liveImg": True,
        }
