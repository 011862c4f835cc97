"""Filesystem change subscriptions.

Wraps a watchdog observer behind an explicit subscribe/unsubscribe
interface. Each subscription is a stream of ChangeEvents fed from the
observer thread through a queue, so consumers decide on which thread and
at what pace events are handled.
"""

import os
import queue
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from specbuild.errors import WatchError


logger = structlog.get_logger()


class ChangeKind(str, Enum):
    """Kind of filesystem change delivered to subscribers."""

    CREATED = "created"
    MODIFIED = "modified"
    MOVED = "moved"


@dataclass(frozen=True)
class ChangeEvent:
    """A change to a single file.

    Attributes:
        path: Absolute path of the changed file. For moves, the destination.
        kind: What happened to the file.
    """

    path: Path
    kind: ChangeKind


class Subscription:
    """A stream of change events for one directory and set of patterns.

    Iterating blocks until the next event and stops once the subscription
    is closed by ``FileWatcher.unsubscribe``.
    """

    def __init__(
        self,
        directory: Path,
        patterns: tuple[str, ...],
        ignore_patterns: tuple[str, ...] = (),
        recursive: bool = False,
    ) -> None:
        self.directory = directory
        self.patterns = patterns
        self.ignore_patterns = ignore_patterns
        self.recursive = recursive
        self._events: queue.Queue[ChangeEvent | None] = queue.Queue()
        self._closed = threading.Event()
        self._handler: "_SubscriptionHandler | None" = None
        self._watch: ObservedWatch | None = None

    @property
    def closed(self) -> bool:
        """Whether the subscription has been closed."""
        return self._closed.is_set()

    def matches(self, path: str) -> bool:
        """Check a path against the include and ignore patterns."""
        pure = PurePath(path)
        if any(pure.match(pattern) for pattern in self.ignore_patterns):
            return False
        return any(pure.match(pattern) for pattern in self.patterns)

    def publish(self, event: ChangeEvent) -> None:
        """Queue an event for the consumer. Ignored once closed."""
        if not self.closed:
            self._events.put(event)

    def get(self, timeout: float | None = None) -> ChangeEvent | None:
        """Wait for the next event.

        Args:
            timeout: Seconds to wait, or None to wait forever.

        Returns:
            The next event, or None on timeout or when closed.
        """
        try:
            return self._events.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """End the stream, waking any blocked consumer."""
        if not self.closed:
            self._closed.set()
            self._events.put(None)

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self._events.get()
            if event is None:
                return
            yield event


class _SubscriptionHandler(FileSystemEventHandler):
    """Translates watchdog events into ChangeEvents for one subscription."""

    def __init__(self, subscription: Subscription) -> None:
        super().__init__()
        self._subscription = subscription

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path, ChangeKind.CREATED, event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path, ChangeKind.MODIFIED, event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event.dest_path, ChangeKind.MOVED, event)

    def _forward(self, raw_path: str | bytes, kind: ChangeKind, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(raw_path)
        if self._subscription.matches(path):
            self._subscription.publish(ChangeEvent(path=Path(path), kind=kind))


class FileWatcher:
    """Owns a watchdog observer and the subscriptions scheduled on it."""

    def __init__(self, observer: BaseObserver | None = None) -> None:
        """Initialize the file watcher.

        Args:
            observer: Observer to schedule on. Defaults to the platform's
                native watchdog observer.
        """
        self._observer = observer or Observer()
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self._log = logger.bind(component="file_watcher")

    def start(self) -> None:
        """Start the observer thread if it is not already running."""
        with self._lock:
            if not self._observer.is_alive():
                self._observer.start()

    def subscribe(
        self,
        directory: Path,
        patterns: Iterable[str],
        *,
        recursive: bool = False,
        ignore_patterns: Iterable[str] = (),
    ) -> Subscription:
        """Subscribe to changes of matching files under a directory.

        Patterns are matched against each changed path from the right, so
        ``"*"`` matches every file and ``"spec.rst"`` a file of that name.

        Args:
            directory: Existing directory to watch.
            patterns: Glob patterns a changed path must match.
            recursive: Whether to include subdirectories.
            ignore_patterns: Glob patterns that exclude a path.

        Returns:
            The new subscription.

        Raises:
            WatchError: If the directory does not exist or cannot be watched.
        """
        directory = Path(directory).resolve()
        if not directory.is_dir():
            raise WatchError(directory, "not an existing directory")

        subscription = Subscription(
            directory=directory,
            patterns=tuple(patterns),
            ignore_patterns=tuple(ignore_patterns),
            recursive=recursive,
        )
        handler = _SubscriptionHandler(subscription)

        try:
            watch = self._observer.schedule(handler, str(directory), recursive=recursive)
        except OSError as e:
            raise WatchError(directory, str(e)) from e

        subscription._handler = handler
        subscription._watch = watch
        with self._lock:
            self._subscriptions.append(subscription)

        self._log.info(
            "subscribed",
            directory=str(directory),
            patterns=list(subscription.patterns),
            recursive=recursive,
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Stop delivering events to a subscription and close its stream.

        Unsubscribing twice is a no-op.
        """
        with self._lock:
            if subscription not in self._subscriptions:
                return
            self._subscriptions.remove(subscription)

        if subscription._handler is not None and subscription._watch is not None:
            self._observer.remove_handler_for_watch(
                subscription._handler, subscription._watch
            )
        subscription.close()
        self._log.info("unsubscribed", directory=str(subscription.directory))

    def stop(self) -> None:
        """Close every subscription and stop the observer thread."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            self.unsubscribe(subscription)

        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join()

    def __enter__(self) -> "FileWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
