"""Lifecycle state machines for builds, watchers and the server."""

import threading
from enum import Enum, auto
from typing import ClassVar, Generic, TypeVar

import structlog


logger = structlog.get_logger()

S = TypeVar("S", bound=Enum)


class BuildState(Enum):
    """Build lifecycle states.

    State transitions:
        BUILD_PENDING -> RENDERING: Begin rendering the source document
        RENDERING -> WRITING: Render succeeded, write the output file
        WRITING -> BUILD_DONE: Output file in place
        BUILD_PENDING/RENDERING/WRITING -> BUILD_FAILED: Build failed
    """

    BUILD_PENDING = auto()
    RENDERING = auto()
    WRITING = auto()
    BUILD_DONE = auto()
    BUILD_FAILED = auto()


class WatchState(Enum):
    """Source watcher states.

    State transitions:
        IDLE -> WATCHING: Subscription registered
        WATCHING -> REBUILDING: Change received, build running
        REBUILDING -> WATCHING: Build settled (success or failure)
        Any -> STOPPED: Watcher shut down
    """

    IDLE = auto()
    WATCHING = auto()
    REBUILDING = auto()
    STOPPED = auto()


class ServerState(Enum):
    """Live-reload server states.

    State transitions:
        IDLE -> STARTING: Server thread launched
        STARTING -> SERVING: Listening socket bound
        STARTING -> FAILED: Could not bind
        SERVING -> STOPPED: Server shut down
    """

    IDLE = auto()
    STARTING = auto()
    SERVING = auto()
    FAILED = auto()
    STOPPED = auto()


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_state: Enum, to_state: Enum) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid state transition: {from_state.name} -> {to_state.name}"
        )


class StateMachine(Generic[S]):
    """Table-driven state machine.

    Subclasses provide the initial state and the transition table.
    Transitions are guarded by a lock since watcher and server states
    change from background threads.
    """

    INITIAL: ClassVar[Enum]
    VALID_TRANSITIONS: ClassVar[dict]
    TERMINAL: ClassVar[frozenset] = frozenset()

    def __init__(self, name: str, component: str) -> None:
        """Initialize the state machine in its initial state.

        Args:
            name: Identifier used in log messages.
            component: Log component name.
        """
        self._name = name
        self._state: S = self.INITIAL  # type: ignore[assignment]
        self._lock = threading.Lock()
        self._log = logger.bind(component=component, machine=name)

    @property
    def state(self) -> S:
        """Get the current state."""
        return self._state

    @property
    def name(self) -> str:
        """Get the machine name."""
        return self._name

    def can_transition(self, to_state: S) -> bool:
        """Check if a transition to the given state is valid.

        Args:
            to_state: The target state.

        Returns:
            True if the transition is valid, False otherwise.
        """
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: S) -> None:
        """Transition to a new state.

        Args:
            to_state: The target state.

        Raises:
            StateTransitionError: If the transition is invalid.
        """
        with self._lock:
            if not self.can_transition(to_state):
                self._log.error(
                    "invariant_violation",
                    error_type="illegal_state_transition",
                    from_state=self._state.name,
                    to_state=to_state.name,
                )
                raise StateTransitionError(self._state, to_state)

            old_state = self._state
            self._state = to_state

        self._log.debug(
            "state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def advance(self, from_state: S, to_state: S) -> bool:
        """Transition only if the machine is currently in ``from_state``.

        Args:
            from_state: Expected current state.
            to_state: The target state.

        Returns:
            True if the transition happened.
        """
        with self._lock:
            if self._state != from_state or not self.can_transition(to_state):
                return False
            self._state = to_state

        self._log.debug(
            "state_transition",
            from_state=from_state.name,
            to_state=to_state.name,
        )
        return True

    def is_terminal(self) -> bool:
        """Check if the current state is terminal."""
        return self._state in self.TERMINAL


class BuildStateMachine(StateMachine[BuildState]):
    """State machine for a single build invocation."""

    INITIAL = BuildState.BUILD_PENDING
    VALID_TRANSITIONS: ClassVar[dict[BuildState, set[BuildState]]] = {
        BuildState.BUILD_PENDING: {BuildState.RENDERING, BuildState.BUILD_FAILED},
        BuildState.RENDERING: {BuildState.WRITING, BuildState.BUILD_FAILED},
        BuildState.WRITING: {BuildState.BUILD_DONE, BuildState.BUILD_FAILED},
        BuildState.BUILD_DONE: set(),  # Terminal state
        BuildState.BUILD_FAILED: set(),  # Terminal state
    }
    TERMINAL = frozenset({BuildState.BUILD_DONE, BuildState.BUILD_FAILED})

    def __init__(self, build_id: str) -> None:
        """Initialize the build state machine.

        Args:
            build_id: Unique build identifier for logging.
        """
        super().__init__(build_id, "builder")

    def to_rendering(self) -> None:
        """Transition to RENDERING state."""
        self.transition(BuildState.RENDERING)

    def to_writing(self) -> None:
        """Transition to WRITING state."""
        self.transition(BuildState.WRITING)

    def to_done(self) -> None:
        """Transition to BUILD_DONE state."""
        self.transition(BuildState.BUILD_DONE)

    def to_failed(self) -> None:
        """Transition to BUILD_FAILED state."""
        self.transition(BuildState.BUILD_FAILED)

    def is_done(self) -> bool:
        """Check if the build completed successfully."""
        return self._state == BuildState.BUILD_DONE

    def is_failed(self) -> bool:
        """Check if the build failed."""
        return self._state == BuildState.BUILD_FAILED


class WatchStateMachine(StateMachine[WatchState]):
    """State machine for the source watcher."""

    INITIAL = WatchState.IDLE
    VALID_TRANSITIONS: ClassVar[dict[WatchState, set[WatchState]]] = {
        WatchState.IDLE: {WatchState.WATCHING, WatchState.STOPPED},
        WatchState.WATCHING: {WatchState.REBUILDING, WatchState.STOPPED},
        WatchState.REBUILDING: {WatchState.WATCHING, WatchState.STOPPED},
        WatchState.STOPPED: set(),  # Terminal state
    }
    TERMINAL = frozenset({WatchState.STOPPED})


class ServerStateMachine(StateMachine[ServerState]):
    """State machine for the live-reload server."""

    INITIAL = ServerState.IDLE
    VALID_TRANSITIONS: ClassVar[dict[ServerState, set[ServerState]]] = {
        ServerState.IDLE: {ServerState.STARTING, ServerState.STOPPED},
        ServerState.STARTING: {
            ServerState.SERVING,
            ServerState.FAILED,
            ServerState.STOPPED,
        },
        ServerState.SERVING: {ServerState.STOPPED},
        ServerState.FAILED: set(),  # Terminal state
        ServerState.STOPPED: set(),  # Terminal state
    }
    TERMINAL = frozenset({ServerState.FAILED, ServerState.STOPPED})
