"""
Graph Nodes - Runtime Vertices of the Reactive Graph

Each Signal materialises into one or more nodes. A node holds the latest
value, knows its upstream and dependent nodes, and recomputes itself at most
once per propagation pass. Nodes are reference counted: when the last
consumer releases a node it disconnects from its upstreams and cancels any
pending timer or task it owns.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from .graph import ReactiveGraph
    from .signals import Signal

logger = logging.getLogger(__name__)


class _Empty:
    """Sentinel for a signal that has not produced a value yet."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "EMPTY"

    def __bool__(self):
        return False


EMPTY = _Empty()


class SignalError(Exception):
    """Base exception for reactive graph errors"""
    pass


class EmptySignalError(SignalError):
    """Raised when reading a signal that has not produced a value"""
    pass


class CrossThreadError(SignalError):
    """Raised when a change is pushed into the graph from a foreign thread"""
    pass


class Subscription:
    """
    Handle for an external subscriber.

    Cancelling stops delivery immediately, even for notifications already
    queued in the current pass.
    """

    def __init__(self, node: "Node", callback: Callable[[Any], None]):
        self.node = node
        self.callback = callback
        self.active = True

    def deliver(self, value: Any) -> None:
        if self.active:
            self.callback(value)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self.node.remove_subscriber(self)

    def __repr__(self):
        state = "active" if self.active else "cancelled"
        return f"Subscription({self.node.name}, {state})"


class Node:
    """Base runtime node."""

    hot = False

    def __init__(self, graph: "ReactiveGraph", upstreams: Sequence["Node"] = (), name: Optional[str] = None):
        self.graph = graph
        self.name = name or self.__class__.__name__
        self.upstreams: List[Node] = list(upstreams)
        self.dependents: List[Node] = []
        self.subscribers: List[Subscription] = []
        self.value: Any = EMPTY
        self.stamp = 0
        self.rank = 1 + max((upstream.rank for upstream in self.upstreams), default=-1)
        self.disposed = False
        self._refcount = 0
        self._dispose_hooks: List[Callable[["Node"], None]] = []
        for upstream in self.upstreams:
            upstream.dependents.append(self)

    @property
    def has_value(self) -> bool:
        return self.value is not EMPTY

    def set_value(self, value: Any, pass_id: int = 0) -> None:
        self.value = value
        self.stamp = pass_id

    def changed(self, upstream: "Node", pass_id: int) -> bool:
        """True if upstream emitted during pass_id."""
        return upstream.stamp == pass_id

    def connect(self) -> None:
        """Initialise from upstream values already present at materialisation."""
        pass

    def recompute(self, pass_id: int) -> bool:
        """
        Recompute after an upstream emitted in this pass.

        Returns:
            True if this node emitted a new value
        """
        return False

    # Reference counting

    def acquire(self) -> "Node":
        self._refcount += 1
        return self

    def release(self) -> None:
        if self.hot:
            return
        self._refcount -= 1
        if self._refcount <= 0:
            self.dispose()

    def add_dispose_hook(self, hook: Callable[["Node"], None]) -> None:
        self._dispose_hooks.append(hook)

    def add_subscriber(self, subscription: Subscription) -> None:
        self.subscribers.append(subscription)

    def remove_subscriber(self, subscription: Subscription) -> None:
        if subscription in self.subscribers:
            self.subscribers.remove(subscription)
            self.release()

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self.on_dispose()
        for upstream in self.upstreams:
            if self in upstream.dependents:
                upstream.dependents.remove(self)
            upstream.release()
        for hook in self._dispose_hooks:
            hook(self)
        self._dispose_hooks.clear()

    def on_dispose(self) -> None:
        pass

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r}, value={self.value!r}, rank={self.rank})"


class SourceNode(Node):
    """Mutable input cell. Hot: lives as long as its graph."""

    hot = True

    def __init__(self, graph, initial: Any = EMPTY, name: Optional[str] = None):
        super().__init__(graph, (), name)
        self.value = initial


class ConstantNode(Node):
    """Node that holds one value from creation and never changes."""

    def __init__(self, graph, value: Any, name: Optional[str] = None):
        super().__init__(graph, (), name)
        self.value = value


class AwaitableNode(Node):
    """Spawns async work on connect and emits its result once."""

    def __init__(self, graph, factory: Callable[[], Any], name: Optional[str] = None):
        super().__init__(graph, (), name)
        self._factory = factory
        self._task = None

    def connect(self) -> None:
        self._task = self.graph.scheduler.spawn(self._factory, self._deliver)

    def _deliver(self, value: Any) -> None:
        self._task = None
        if self.disposed:
            return
        self.graph.emit(self, value)

    def on_dispose(self) -> None:
        if self._task is not None:
            logger.debug(f"Cancelling in-flight work for {self.name}")
            self._task.cancel()
            self._task = None


class MapNode(Node):
    def __init__(self, graph, upstream: Node, fn: Callable[[Any], Any], name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self._fn = fn

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self.value = self._fn(upstream.value)

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if not self.changed(upstream, pass_id):
            return False
        self.set_value(self._fn(upstream.value), pass_id)
        return True


class TapNode(Node):
    """Pass-through node running a side effect inside the pass."""

    def __init__(self, graph, upstream: Node, effect: Callable[[Any], None], name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self._effect = effect

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self._effect(upstream.value)
            self.value = upstream.value

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if not self.changed(upstream, pass_id):
            return False
        self._effect(upstream.value)
        self.set_value(upstream.value, pass_id)
        return True


class StartWithNode(Node):
    def __init__(self, graph, upstream: Node, seed: Any, name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self.value = seed

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self.value = upstream.value

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if not self.changed(upstream, pass_id):
            return False
        self.set_value(upstream.value, pass_id)
        return True


class CombineLatestNode(Node):
    """Tuple of the latest upstream values, once all have produced."""

    def connect(self) -> None:
        if all(upstream.has_value for upstream in self.upstreams):
            self.value = tuple(upstream.value for upstream in self.upstreams)

    def recompute(self, pass_id: int) -> bool:
        if not any(self.changed(upstream, pass_id) for upstream in self.upstreams):
            return False
        if not all(upstream.has_value for upstream in self.upstreams):
            return False
        self.set_value(tuple(upstream.value for upstream in self.upstreams), pass_id)
        return True


class RemoveDuplicatesNode(Node):
    def __init__(self, graph, upstream: Node, eq: Callable[[Any, Any], bool], name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self._eq = eq

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self.value = upstream.value

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if not self.changed(upstream, pass_id):
            return False
        if self.has_value and self._eq(self.value, upstream.value):
            return False
        self.set_value(upstream.value, pass_id)
        return True


class DebounceNode(Node):
    """
    Emits the last upstream value once the quiet period elapses.

    Every arrival cancels the armed timer and bumps the generation; a timer
    from an older generation that still fires is ignored.
    """

    def __init__(self, graph, upstream: Node, seconds: float, name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self.seconds = seconds
        self._timer = None
        self._generation = 0

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self._arm(upstream.value)

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if self.changed(upstream, pass_id):
            self._arm(upstream.value)
        return False

    def _arm(self, value: Any) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._generation += 1
        generation = self._generation
        self._timer = self.graph.scheduler.call_later(self.seconds, lambda: self._fire(generation, value))

    def _fire(self, generation: int, value: Any) -> None:
        if self.disposed or generation != self._generation:
            logger.debug(f"{self.name}: dropping superseded timer (generation {generation})")
            return
        self._timer = None
        logger.debug(f"{self.name}: quiet period elapsed, emitting {value!r}")
        self.graph.emit(self, value)

    def on_dispose(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


class FlatMapLatestNode(Node):
    """
    Forwards the emissions of the inner signal for the latest key only.

    Each inner subscription is stamped with a generation number; a value
    arriving with an older generation is discarded, and switching keys
    cancels the previous inner subscription.
    """

    def __init__(self, graph, upstream: Node, fn: Callable[[Any], "Signal"], name: Optional[str] = None):
        super().__init__(graph, (upstream,), name)
        self._fn = fn
        self._inner: Optional[Subscription] = None
        self.generation = 0

    def connect(self) -> None:
        upstream = self.upstreams[0]
        if upstream.has_value:
            self._switch(upstream.value, None)

    def recompute(self, pass_id: int) -> bool:
        upstream = self.upstreams[0]
        if not self.changed(upstream, pass_id):
            return False
        return self._switch(upstream.value, pass_id)

    def _switch(self, key: Any, pass_id: Optional[int]) -> bool:
        self.generation += 1
        generation = self.generation
        self._drop_inner()

        inner = self._fn(key)
        logger.debug(f"{self.name}: switched to {key!r} (generation {generation})")
        self._inner = inner.subscribe(lambda value: self._forward(generation, value), replay=False)

        inner_node = self._inner.node
        if not inner_node.has_value:
            return False
        if pass_id is None:
            self.value = inner_node.value
            return False
        self.set_value(inner_node.value, pass_id)
        return True

    def _forward(self, generation: int, value: Any) -> None:
        if self.disposed or generation != self.generation:
            logger.debug(f"{self.name}: discarding stale value {value!r} (generation {generation})")
            return
        self.graph.emit(self, value)

    def _drop_inner(self) -> None:
        if self._inner is not None:
            self._inner.cancel()
            self._inner = None

    def on_dispose(self) -> None:
        self._drop_inner()
