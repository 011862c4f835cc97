"""Server: static file server with live-reload notifications.

Static serving and the LiveReload WebSocket protocol are owned by
livereload (on tornado). This module starts that server on a background
thread, replaces livereload's own polling watcher with a no-op, and
forwards output-directory changes seen by our own subscription to the
connected clients.
"""

import asyncio
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog
from livereload import Server
from livereload.handlers import LiveReloadHandler
from livereload.watcher import Watcher
from tornado.ioloop import IOLoop
from tornado.websocket import WebSocketClosedError

from specbuild.constants import COMPONENT_SERVER, TEMP_SUFFIX
from specbuild.errors import ServerStartError
from specbuild.observability.metrics import BuildMetrics
from specbuild.state_machine import ServerState, ServerStateMachine
from specbuild.watching import FileWatcher, Subscription


logger = structlog.get_logger()


def reload_message(path: str) -> dict[str, object]:
    """Build a LiveReload protocol reload command for a changed file."""
    return {
        "command": "reload",
        "path": path,
        "liveCSS": True,
        "liveImg": True,
    }


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol for pushing reload notifications to connected clients."""

    def notify(self, path: str) -> None:
        """Tell every connected client that ``path`` changed.

        Args:
            path: Absolute path of the changed file.
        """
        ...


class _ExternalWatcher(Watcher):
    """livereload watcher that never reports changes itself.

    Change detection is done by OutputNotifier, so livereload must not
    poll the working directory on its own.
    """

    def start(self, callback):  # noqa: ARG002
        # True tells livereload not to schedule its polling callback
        return True

    def examine(self):
        return None, None


class LiveReloadServer:
    """Serves the output root over HTTP and relays reload notifications.

    State: IDLE -> STARTING -> SERVING|FAILED, STOPPED on shutdown.
    """

    def __init__(
        self,
        root: Path,
        port: int,
        host: str = "127.0.0.1",
        metrics: BuildMetrics | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            root: Directory to serve.
            port: TCP port.
            host: Bind address.
            metrics: Optional metrics instance.
        """
        self._root = Path(root)
        self._port = port
        self._host = host
        self._metrics = metrics or BuildMetrics.get_instance()
        self._state_machine = ServerStateMachine("livereload", COMPONENT_SERVER)
        self._loop: IOLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready: Future[str] = Future()
        self._log = logger.bind(component=COMPONENT_SERVER, port=port)

    @property
    def state(self) -> ServerState:
        """Get current server state."""
        return self._state_machine.state

    @property
    def url(self) -> str:
        """Base URL of the server."""
        return f"http://{self._host}:{self._port}/"

    def start(self) -> "Future[str]":
        """Start serving on a background thread.

        Returns:
            Future resolving with the server URL once it accepts
            connections, or failing with ServerStartError.
        """
        self._state_machine.transition(ServerState.STARTING)
        self._root.mkdir(parents=True, exist_ok=True)
        self._thread = threading.Thread(
            target=self._serve, name="livereload-server", daemon=True
        )
        self._thread.start()
        return self._ready

    def notify(self, path: str) -> None:
        """Push a reload notification for ``path`` to every client.

        Safe to call from any thread; delivery happens on the server's
        event loop. Notifications before the server is up are dropped.
        """
        loop = self._loop
        if loop is None or self.state != ServerState.SERVING:
            self._log.debug("notification_dropped", path=path, state=self.state.name)
            return
        loop.add_callback(self.broadcast, reload_message(path))

    def broadcast(self, message: dict[str, object]) -> int:
        """Send a message to all connected clients. Runs on the event loop.

        Returns:
            Number of clients the message was delivered to.
        """
        delivered = 0
        for waiter in list(LiveReloadHandler.waiters):
            try:
                waiter.write_message(message)
                delivered += 1
            except WebSocketClosedError:
                LiveReloadHandler.waiters.discard(waiter)

        self._metrics.record_notification()
        self._log.info("reload_notified", path=message.get("path"), clients=delivered)
        return delivered

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the event loop and wait for the server thread."""
        loop = self._loop
        if loop is not None:
            loop.add_callback(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout)
        if not self._state_machine.is_terminal():
            self._state_machine.transition(ServerState.STOPPED)
        self._log.info("server_stopped")

    def _serve(self) -> None:
        asyncio.set_event_loop(asyncio.new_event_loop())
        loop = IOLoop.current()
        self._loop = loop
        # Runs once the loop starts, i.e. after livereload bound its socket
        loop.add_callback(self._mark_serving)

        server = Server(watcher=_ExternalWatcher())
        try:
            server.serve(
                port=self._port,
                host=self._host,
                root=str(self._root),
                open_url_delay=None,
                restart_delay=0,
            )
        except OSError as e:
            self._loop = None
            self._state_machine.advance(ServerState.STARTING, ServerState.FAILED)
            error = ServerStartError(self._host, self._port, str(e))
            self._log.error("server_start_failed", error=str(error))
            if not self._ready.done():
                self._ready.set_exception(error)
        except Exception as e:
            self._loop = None
            self._state_machine.advance(ServerState.STARTING, ServerState.FAILED)
            self._log.exception("server_crashed")
            if not self._ready.done():
                self._ready.set_exception(e)
            raise
        finally:
            loop.close(all_fds=True)

    def _mark_serving(self) -> None:
        if self._state_machine.advance(ServerState.STARTING, ServerState.SERVING):
            self._log.info("server_ready", url=self.url, root=str(self._root))
            self._ready.set_result(self.url)


class OutputNotifier:
    """Forwards every change under the output root to a notification channel."""

    def __init__(
        self,
        output_dir: Path,
        channel: NotificationChannel,
        file_watcher: FileWatcher,
    ) -> None:
        """Initialize the notifier.

        Args:
            output_dir: Build output root.
            channel: Where reload notifications go.
            file_watcher: Shared file watcher.
        """
        self._output_dir = Path(output_dir)
        self._channel = channel
        self._file_watcher = file_watcher
        self._subscription: Subscription | None = None
        self._log = logger.bind(component=COMPONENT_SERVER)

    def subscribe(self) -> Subscription:
        """Register the recursive output subscription.

        Raises:
            WatchError: If the output root cannot be watched.
        """
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._subscription = self._file_watcher.subscribe(
            self._output_dir,
            ["*"],
            recursive=True,
            ignore_patterns=[f"*{TEMP_SUFFIX}"],
        )
        self._file_watcher.start()
        return self._subscription

    def run(self) -> None:
        """Relay change events until the subscription is closed."""
        subscription = self._subscription or self.subscribe()
        for event in subscription:
            path = str(event.path.resolve())
            self._log.debug("output_changed", path=path, kind=event.kind.value)
            self._channel.notify(path)

    def stop(self) -> None:
        """Close the output subscription."""
        if self._subscription is not None:
            self._file_watcher.unsubscribe(self._subscription)
