"""Tests for SourceWatcher."""

import threading
from pathlib import Path

from watchdog.observers.polling import PollingObserver

from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.models import BuildResult
from specbuild.state_machine import WatchState
from specbuild.tasks.watch import SourceWatcher
from specbuild.watching import ChangeEvent, ChangeKind, FileWatcher
from tests.helpers.waiting import wait_until


class CountingBuild:
    """Build callable counting invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> BuildResult:
        self.calls += 1
        return BuildResult(build_id=str(self.calls), success=True)


class TestSourceWatcher:
    """Tests for SourceWatcher."""

    def test_change_event_triggers_rebuild(self, tmp_path: Path) -> None:
        """Each delivered change requests a rebuild."""
        source = tmp_path / "spec.rst"
        source.write_text("x", encoding="utf-8")
        build = CountingBuild()
        file_watcher = FileWatcher(observer=PollingObserver(timeout=0.1))
        watcher = SourceWatcher(source, build, file_watcher, metrics=BuildMetrics())

        subscription = watcher.subscribe()
        assert watcher.state == WatchState.WATCHING

        runner = threading.Thread(target=watcher.run, daemon=True)
        runner.start()
        subscription.publish(ChangeEvent(source.resolve(), ChangeKind.MODIFIED))

        assert wait_until(lambda: build.calls == 1)

        watcher.stop()
        file_watcher.stop()
        runner.join(timeout=5)

        assert not runner.is_alive()
        assert watcher.state == WatchState.STOPPED

    def test_subscribes_to_source_file_only(self, tmp_path: Path) -> None:
        """The subscription covers the source file, non-recursively."""
        source = tmp_path / "spec.rst"
        source.write_text("x", encoding="utf-8")
        file_watcher = FileWatcher(observer=PollingObserver(timeout=0.1))
        watcher = SourceWatcher(source, CountingBuild(), file_watcher, metrics=BuildMetrics())

        subscription = watcher.subscribe()

        assert subscription.directory == tmp_path.resolve()
        assert subscription.patterns == ("spec.rst",)
        assert subscription.recursive is False
        watcher.stop()
        file_watcher.stop()

    def test_stop_before_subscribe(self, tmp_path: Path) -> None:
        """Stopping an idle watcher is allowed."""
        file_watcher = FileWatcher(observer=PollingObserver(timeout=0.1))
        watcher = SourceWatcher(
            tmp_path / "spec.rst", CountingBuild(), file_watcher, metrics=BuildMetrics()
        )

        watcher.stop()

        assert watcher.state == WatchState.STOPPED
