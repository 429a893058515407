"""
Dependency-aware lifecycle coordination for long-running threaded components.

Each participating component owns one LifecycleCoordinator. Coordinators are
registered in a ProcessRegistry, which issues their ProcessIDs and holds the
dependency edges between them keyed by id. When a coordinator is destroyed the
registry removes the matching edge from every dependent, so no component ever
has to poll another's liveness.
"""

import itertools
import logging
import threading
import weakref
from typing import Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

ProcessID = int
TeardownCallback = Callable[[ProcessID], None]


class ProcessRegistry:
    """Shared table of live coordinators and the edges that point at them."""

    def __init__(self) -> None:
        # Reentrant: the garbage collector may run a teardown on a thread that
        # already holds this lock.
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._live: "weakref.WeakValueDictionary[ProcessID, LifecycleCoordinator]" = (
            weakref.WeakValueDictionary()
        )
        # dependency id -> ids of the coordinators depending on it
        self._dependents: Dict[ProcessID, Set[ProcessID]] = {}

    def register(self, coordinator: "LifecycleCoordinator") -> ProcessID:
        with self._lock:
            process_id = next(self._ids)
            self._live[process_id] = coordinator
            self._dependents[process_id] = set()
        return process_id

    def is_alive(self, process_id: ProcessID) -> bool:
        with self._lock:
            return process_id in self._dependents

    def watch(self, dependency_id: ProcessID, dependent_id: ProcessID) -> bool:
        """Record an edge; returns False if the dependency is already gone."""
        with self._lock:
            dependents = self._dependents.get(dependency_id)
            if dependents is None:
                return False
            dependents.add(dependent_id)
            return True

    def unwatch(self, dependency_id: ProcessID, dependent_id: ProcessID) -> None:
        with self._lock:
            dependents = self._dependents.get(dependency_id)
            if dependents is not None:
                dependents.discard(dependent_id)

    def release(self, process_id: ProcessID) -> List["LifecycleCoordinator"]:
        """Forget a destroyed coordinator and return its live dependents."""
        with self._lock:
            dependent_ids = self._dependents.pop(process_id, set())
            self._live.pop(process_id, None)
            for dependents in self._dependents.values():
                dependents.discard(process_id)
            return [
                coordinator
                for dependent_id in sorted(dependent_ids)
                if (coordinator := self._live.get(dependent_id)) is not None
            ]


default_registry = ProcessRegistry()


def _teardown(
    registry: ProcessRegistry,
    process_id: ProcessID,
    callbacks: List[TeardownCallback],
    callbacks_lock: threading.RLock,
) -> None:
    # Runs at most once per coordinator (weakref.finalize guarantees it), either
    # from an explicit destroy() or when the coordinator is garbage collected.
    for dependent in registry.release(process_id):
        dependent.remove_dependency(process_id)
    with callbacks_lock:
        pending = list(callbacks)
        callbacks.clear()
    for callback in pending:
        try:
            callback(process_id)
        except Exception:
            logger.exception("Teardown callback for process %d failed", process_id)


class LifecycleCoordinator:
    """
    Liveness and shutdown state for one long-lived component.

    The coordinator never raises: misuse shows up only as state. A component is
    deletable once its own work is finished and nothing it depends on is alive.
    """

    def __init__(self, name: str, registry: Optional[ProcessRegistry] = None) -> None:
        self.name = name
        self._registry = registry or default_registry
        self._lock = threading.RLock()
        self._dependencies: List[ProcessID] = []
        self._callbacks: List[TeardownCallback] = []
        self._shutdown = threading.Event()
        self._finished = threading.Event()
        self.process_id: ProcessID = self._registry.register(self)
        self._finalizer = weakref.finalize(
            self,
            _teardown,
            self._registry,
            self.process_id,
            self._callbacks,
            self._lock,
        )

    def __repr__(self) -> str:
        return f"LifecycleCoordinator(name={self.name!r}, process_id={self.process_id})"

    # Dependencies

    def add_dependency(self, other: "LifecycleCoordinator") -> None:
        """Keep this component alive for as long as `other` exists."""
        if other is self:
            return
        with self._lock:
            if other.process_id in self._dependencies:
                return
            if not self._registry.watch(other.process_id, self.process_id):
                logger.debug(
                    "%s: dependency %s already destroyed, edge not recorded",
                    self.name,
                    other.name,
                )
                return
            self._dependencies.append(other.process_id)

    def remove_dependency(self, process_id: ProcessID) -> None:
        with self._lock:
            if process_id in self._dependencies:
                self._dependencies.remove(process_id)
        self._registry.unwatch(process_id, self.process_id)

    def has_dependencies(self) -> bool:
        with self._lock:
            return bool(self._dependencies)

    def dependencies(self) -> List[ProcessID]:
        with self._lock:
            return list(self._dependencies)

    def add_teardown_callback(self, callback: TeardownCallback) -> None:
        """Call `callback(process_id)` once, when this coordinator is destroyed."""
        with self._lock:
            if not self.destroyed:
                self._callbacks.append(callback)
                return
        try:
            callback(self.process_id)
        except Exception:
            logger.exception("Teardown callback for process %d failed", self.process_id)

    # Shutdown and completion flags

    def request_shutdown(self) -> None:
        """Cooperative stop request; threads observe it on their next check."""
        self._shutdown.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is requested or `timeout` elapses."""
        return self._shutdown.wait(timeout)

    def mark_finished(self) -> None:
        self._finished.set()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def can_exit_loop(self) -> bool:
        with self._lock:
            return self._shutdown.is_set() and not self._dependencies

    def is_deletable(self) -> bool:
        with self._lock:
            return self._finished.is_set() and not self._dependencies

    # Destruction

    @property
    def destroyed(self) -> bool:
        return not self._finalizer.alive

    def destroy(self) -> None:
        """Notify dependents and teardown observers. Idempotent."""
        self._finalizer()
