"""Watcher: rebuilds the document whenever the source changes."""

import threading
from collections.abc import Callable
from pathlib import Path

import structlog

from specbuild.constants import COMPONENT_WATCHER
from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.models import BuildResult
from specbuild.state_machine import WatchState, WatchStateMachine
from specbuild.watching import FileWatcher, Subscription


logger = structlog.get_logger()


class RebuildQueue:
    """Runs rebuilds on one worker thread with a single pending slot.

    A request while a build is running marks the slot as pending; any
    further requests before that build settles are coalesced into the
    same slot. Builds therefore never overlap and at most one rebuild
    follows the one in flight.
    """

    def __init__(
        self,
        build: Callable[[], BuildResult],
        metrics: BuildMetrics | None = None,
    ) -> None:
        """Initialize the rebuild queue.

        Args:
            build: Callable performing one build.
            metrics: Optional metrics instance.
        """
        self._build = build
        self._metrics = metrics or BuildMetrics.get_instance()
        self._cond = threading.Condition()
        self._pending = False
        self._building = False
        self._stopped = False
        self._completed = 0
        self._thread: threading.Thread | None = None
        self._log = logger.bind(component=COMPONENT_WATCHER)

    @property
    def completed(self) -> int:
        """Number of builds that have settled."""
        with self._cond:
            return self._completed

    def start(self) -> None:
        """Start the worker thread."""
        with self._cond:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._run, name="rebuild-worker", daemon=True
            )
        self._thread.start()

    def request(self) -> bool:
        """Ask for a rebuild.

        Returns:
            True if a new rebuild was queued, False if the request was
            coalesced into one already pending.
        """
        with self._cond:
            if self._pending:
                self._metrics.record_coalesced()
                self._log.debug("rebuild_coalesced")
                return False
            self._pending = True
            self._cond.notify_all()
            return True

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no build is running or pending.

        Returns:
            True if the queue went idle, False on timeout.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._pending and not self._building, timeout
            )

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker after the build in flight, dropping a pending one."""
        with self._cond:
            self._stopped = True
            self._pending = False
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or self._stopped)
                if self._stopped:
                    return
                self._pending = False
                self._building = True

            try:
                result = self._build()
                if not result.success:
                    self._log.warning("rebuild_failed", error=result.error_summary)
            except Exception:
                # A crashing build must not end the watch loop
                self._log.exception("rebuild_crashed")
            finally:
                with self._cond:
                    self._building = False
                    self._completed += 1
                    self._cond.notify_all()


class SourceWatcher:
    """Subscribes to the source document and requests a rebuild per change.

    State: IDLE -> WATCHING <-> REBUILDING, STOPPED on shutdown.
    """

    def __init__(
        self,
        source_path: Path,
        build: Callable[[], BuildResult],
        file_watcher: FileWatcher,
        metrics: BuildMetrics | None = None,
    ) -> None:
        """Initialize the source watcher.

        Args:
            source_path: Source document to watch.
            build: Callable performing one build.
            file_watcher: Shared file watcher.
            metrics: Optional metrics instance.
        """
        self._source_path = Path(source_path)
        self._build = build
        self._file_watcher = file_watcher
        self._state_machine = WatchStateMachine("source", COMPONENT_WATCHER)
        self._queue = RebuildQueue(self._rebuild, metrics=metrics)
        self._subscription: Subscription | None = None
        self._log = logger.bind(component=COMPONENT_WATCHER)

    @property
    def state(self) -> WatchState:
        """Get current watcher state."""
        return self._state_machine.state

    @property
    def subscription(self) -> Subscription | None:
        """Active source subscription, once subscribed."""
        return self._subscription

    @property
    def queue(self) -> RebuildQueue:
        """Rebuild queue fed by this watcher."""
        return self._queue

    def subscribe(self) -> Subscription:
        """Register the source subscription and start the rebuild worker.

        Raises:
            WatchError: If the source directory cannot be watched.
        """
        source = self._source_path.resolve()
        self._subscription = self._file_watcher.subscribe(
            source.parent, [source.name], recursive=False
        )
        self._queue.start()
        self._file_watcher.start()
        self._state_machine.transition(WatchState.WATCHING)
        self._log.info("watch_started", source=str(source))
        return self._subscription

    def run(self) -> None:
        """Watch until stopped, requesting a rebuild for every change."""
        if self._state_machine.is_terminal():
            return
        subscription = self._subscription or self.subscribe()
        for event in subscription:
            self._log.info("source_changed", path=str(event.path), kind=event.kind.value)
            self._queue.request()

    def stop(self) -> None:
        """Unsubscribe and stop the rebuild worker."""
        self._queue.stop()
        if not self._state_machine.is_terminal():
            self._state_machine.transition(WatchState.STOPPED)
        if self._subscription is not None:
            self._file_watcher.unsubscribe(self._subscription)
            self._log.info("watch_stopped")

    def _rebuild(self) -> BuildResult:
        self._state_machine.advance(WatchState.WATCHING, WatchState.REBUILDING)
        try:
            return self._build()
        finally:
            self._state_machine.advance(WatchState.REBUILDING, WatchState.WATCHING)
