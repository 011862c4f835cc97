"""Named tasks and the runner that executes them.

The graph is an explicit value: a pipeline builds it from its components
and hands it to a TaskRunner, instead of tasks registering themselves in
a process-wide table.
"""

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

import structlog

from specbuild.constants import COMPONENT_TASKS
from specbuild.errors import SpecBuildError, TaskFailedError, TaskGraphError


logger = structlog.get_logger()


class TaskMode(str, Enum):
    """How a task's dependencies are run before its own action."""

    SERIES = "series"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class Task:
    """A named unit of work.

    Attributes:
        name: Task name, as used on the command line.
        action: Work done after the dependencies settle. Optional for
            pure aggregate tasks.
        depends_on: Tasks to run first.
        mode: Whether dependencies run one after another or concurrently.
    """

    name: str
    action: Callable[[], None] | None = None
    depends_on: tuple[str, ...] = ()
    mode: TaskMode = TaskMode.SERIES


class TaskGraph:
    """An immutable, validated set of tasks.

    Rejects duplicate names, dependencies on unknown tasks and cycles.
    """

    def __init__(self, tasks: Iterable[Task]) -> None:
        """Initialize and validate the graph.

        Args:
            tasks: Tasks to include.

        Raises:
            TaskGraphError: If the graph is malformed.
        """
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            if task.name in self._tasks:
                raise TaskGraphError(f"Duplicate task: {task.name}")
            self._tasks[task.name] = task

        for task in self._tasks.values():
            for dependency in task.depends_on:
                if dependency not in self._tasks:
                    raise TaskGraphError(
                        f"Task '{task.name}' depends on unknown task '{dependency}'"
                    )

        for name in self._tasks:
            self._check_cycle(name, ())

    def _check_cycle(self, name: str, path: tuple[str, ...]) -> None:
        if name in path:
            cycle = " -> ".join((*path, name))
            raise TaskGraphError(f"Task cycle: {cycle}")
        for dependency in self._tasks[name].depends_on:
            self._check_cycle(dependency, (*path, name))

    @property
    def names(self) -> list[str]:
        """Task names in registration order."""
        return list(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def get(self, name: str) -> Task:
        """Look up a task.

        Raises:
            TaskGraphError: If the task does not exist.
        """
        try:
            return self._tasks[name]
        except KeyError:
            raise TaskGraphError(f"Unknown task: {name}") from None

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Direct dependencies of a task."""
        return self.get(name).depends_on


class TaskRunner:
    """Runs a task after its dependencies.

    Parallel dependencies each get their own thread; the runner waits for
    all of them and fails with the first error any of them raised.
    """

    def __init__(self, graph: TaskGraph) -> None:
        """Initialize the runner.

        Args:
            graph: Tasks to run from.
        """
        self._graph = graph
        self._log = logger.bind(component=COMPONENT_TASKS)

    def run(self, name: str) -> None:
        """Run a task and everything it depends on.

        Raises:
            TaskGraphError: If the task does not exist.
            TaskFailedError: If the task or one of its dependencies fails.
        """
        task = self._graph.get(name)

        if task.mode == TaskMode.PARALLEL and len(task.depends_on) > 1:
            self._run_parallel(task.depends_on)
        else:
            for dependency in task.depends_on:
                self.run(dependency)

        if task.action is None:
            return

        self._log.info("task_started", name=name)
        try:
            task.action()
        except TaskFailedError:
            raise
        except SpecBuildError as e:
            self._log.error("task_failed", name=name, error=str(e))
            raise TaskFailedError(name, str(e)) from e
        self._log.info("task_finished", name=name)

    def _run_parallel(self, names: tuple[str, ...]) -> None:
        errors: list[BaseException] = []
        lock = threading.Lock()
        settled = threading.Semaphore(0)

        def target(dependency: str) -> None:
            try:
                self.run(dependency)
            except Exception as e:
                with lock:
                    errors.append(e)
            finally:
                settled.release()

        for dependency in names:
            threading.Thread(
                target=target,
                args=(dependency,),
                name=f"task-{dependency}",
                daemon=True,
            ).start()

        # Fail on the first branch error without waiting for long-running siblings
        for _ in names:
            settled.acquire()
            with lock:
                if errors:
                    raise errors[0]
