"""Wires the pipeline components into the fixed task graph.

    clean   -> {}
    build   -> {}
    watch   -> {}            (builds once, then on every source change)
    serve   -> {}            (static server plus output notifications)
    start   -> {watch, serve} in parallel
    default -> {build}
"""

from collections.abc import Callable

import structlog

from specbuild.config import BuildConfig
from specbuild.constants import (
    COMPONENT_TASKS,
    TASK_BUILD,
    TASK_CLEAN,
    TASK_DEFAULT,
    TASK_SERVE,
    TASK_START,
    TASK_WATCH,
)
from specbuild.errors import TaskFailedError
from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.engine import DocumentRenderer
from specbuild.renderer.warnings import echo_warning
from specbuild.tasks.build import Builder
from specbuild.tasks.clean import Cleaner
from specbuild.tasks.graph import Task, TaskGraph, TaskMode
from specbuild.tasks.serve import LiveReloadServer, OutputNotifier
from specbuild.tasks.watch import SourceWatcher
from specbuild.watching import FileWatcher


logger = structlog.get_logger()


class Pipeline:
    """Owns the components of one tool invocation and their task graph."""

    def __init__(
        self,
        config: BuildConfig,
        renderer: DocumentRenderer | None = None,
        file_watcher: FileWatcher | None = None,
        emit_warning: Callable[[str], None] = echo_warning,
        metrics: BuildMetrics | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Build configuration.
            renderer: Rendering engine. Defaults to docutils.
            file_watcher: File watcher shared by watch and serve.
            emit_warning: Receives each formatted render warning.
            metrics: Optional metrics instance.
        """
        self._config = config
        self._metrics = metrics or BuildMetrics.get_instance()
        self._file_watcher = file_watcher or FileWatcher()

        self.cleaner = Cleaner(config.output_dir)
        self.builder = Builder(
            config,
            renderer=renderer,
            emit_warning=emit_warning,
            metrics=self._metrics,
        )
        self.watcher = SourceWatcher(
            config.source_path,
            self.builder.build,
            self._file_watcher,
            metrics=self._metrics,
        )
        self.server = LiveReloadServer(
            config.output_dir,
            port=config.port,
            host=config.host,
            metrics=self._metrics,
        )
        self.notifier = OutputNotifier(config.output_dir, self.server, self._file_watcher)
        self._server_started = False
        self._log = logger.bind(component=COMPONENT_TASKS)

        self.graph = TaskGraph(
            [
                Task(TASK_CLEAN, action=self._clean),
                Task(TASK_BUILD, action=self._build),
                Task(TASK_WATCH, action=self._watch),
                Task(TASK_SERVE, action=self._serve),
                Task(
                    TASK_START,
                    depends_on=(TASK_WATCH, TASK_SERVE),
                    mode=TaskMode.PARALLEL,
                ),
                Task(TASK_DEFAULT, depends_on=(TASK_BUILD,)),
            ]
        )

    @property
    def config(self) -> BuildConfig:
        """Get the build configuration."""
        return self._config

    def _clean(self) -> None:
        self.cleaner.clean()

    def _build(self) -> None:
        result = self.builder.build()
        if not result.success:
            raise TaskFailedError(TASK_BUILD, result.error_summary or "build failed")

    def _watch(self) -> None:
        # A broken source must not end the watch before it starts
        result = self.builder.build()
        if not result.success:
            self._log.warning("initial_build_failed", error=result.error_summary)
        self.watcher.run()

    def _serve(self) -> None:
        self.notifier.subscribe()
        self._server_started = True
        ready = self.server.start()
        ready.result()
        self.notifier.run()

    def shutdown(self) -> None:
        """Stop every long-running component that was started."""
        self.watcher.stop()
        self.notifier.stop()
        if self._server_started:
            self.server.stop()
        self._file_watcher.stop()
