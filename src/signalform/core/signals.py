"""
Signals - Public Reactive API

🔄 Describe, then Materialise:
A Signal is a description of an observable cell. Subscribing to a derived
signal materialises its chain into graph nodes; every consumer gets its own
chain unless the signal is shared. Source signals are hot and shared by
construction.

Key Features:
- create / map / combine_latest / debounce / remove_duplicates
- flat_map_latest with generation-stamped inner subscriptions
- share() for one reference-counted materialisation across consumers
- just / from_awaitable / tap / start_with helpers

Example:
    graph = ReactiveGraph()
    name = graph.signal("")
    length_ok = name.map(lambda text: len(text) >= 3)
    length_ok.subscribe(print)
    name.value = "alice"
"""

import operator
from functools import partial
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar, TYPE_CHECKING

from .nodes import (
    EMPTY, AwaitableNode, CombineLatestNode, ConstantNode, DebounceNode, EmptySignalError,
    FlatMapLatestNode, MapNode, Node, RemoveDuplicatesNode, SignalError, SourceNode,
    StartWithNode, Subscription, TapNode,
)

if TYPE_CHECKING:
    from .graph import ReactiveGraph

T = TypeVar("T")
U = TypeVar("U")


class Signal(Generic[T]):
    """Base signal description."""

    def __init__(self, graph: "ReactiveGraph", name: Optional[str] = None):
        self.graph = graph
        self.name = name or self.__class__.__name__

    def materialize(self) -> Node:
        """Return an acquired node for one new consumer."""
        raise NotImplementedError

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Subscription:
        """
        Subscribe to values.

        Args:
            callback: Called with each value after the pass that produced it
            replay: Deliver the current value immediately if one exists

        Returns:
            Subscription; cancel() it to release the chain
        """
        node = self.materialize()
        subscription = Subscription(node, callback)
        node.add_subscriber(subscription)
        if replay and node.has_value:
            subscription.deliver(node.value)
        return subscription

    # Combinators

    def map(self, fn: Callable[[T], U], name: Optional[str] = None) -> "Signal[U]":
        name = name or f"{self.name}.map"
        return DerivedSignal(self.graph, (self,), lambda graph, up: MapNode(graph, up[0], fn, name), name)

    def tap(self, effect: Callable[[T], None], name: Optional[str] = None) -> "Signal[T]":
        name = name or f"{self.name}.tap"
        return DerivedSignal(self.graph, (self,), lambda graph, up: TapNode(graph, up[0], effect, name), name)

    def start_with(self, seed: T) -> "Signal[T]":
        name = f"{self.name}.start_with"
        return DerivedSignal(self.graph, (self,), lambda graph, up: StartWithNode(graph, up[0], seed, name), name)

    def debounce(self, seconds: float) -> "Signal[T]":
        if seconds < 0:
            raise ValueError("Debounce duration must not be negative")
        name = f"{self.name}.debounce"
        return DerivedSignal(self.graph, (self,), lambda graph, up: DebounceNode(graph, up[0], seconds, name), name)

    def remove_duplicates(self, eq: Callable[[T, T], bool] = operator.eq) -> "Signal[T]":
        name = f"{self.name}.remove_duplicates"
        return DerivedSignal(self.graph, (self,), lambda graph, up: RemoveDuplicatesNode(graph, up[0], eq, name), name)

    def flat_map_latest(self, fn: Callable[[T], "Signal[U]"]) -> "Signal[U]":
        name = f"{self.name}.flat_map_latest"
        return DerivedSignal(self.graph, (self,), lambda graph, up: FlatMapLatestNode(graph, up[0], fn, name), name)

    def share(self) -> "SharedSignal[T]":
        return SharedSignal(self)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name!r})"


class MutableSignal(Signal[T]):
    """Hot input signal; the only kind that accepts values from outside."""

    def __init__(self, graph: "ReactiveGraph", initial: Any = EMPTY, name: Optional[str] = None):
        super().__init__(graph, name)
        self.node = SourceNode(graph, initial, self.name)

    def materialize(self) -> Node:
        return self.node.acquire()

    @property
    def has_value(self) -> bool:
        return self.node.has_value

    @property
    def value(self) -> T:
        if not self.node.has_value:
            raise EmptySignalError(f"Signal {self.name!r} has not produced a value")
        return self.node.value

    @value.setter
    def value(self, new_value: T) -> None:
        self.send(new_value)

    def send(self, value: T) -> None:
        """Push a value as one event; runs a full propagation pass."""
        self.graph.emit(self.node, value)

    def send_threadsafe(self, value: T) -> None:
        """Push a value from any thread; delivered on the scheduler thread."""
        self.graph.scheduler.call_soon_threadsafe(partial(self.send, value))


class DerivedSignal(Signal[T]):
    """Cold signal: a fresh node chain per materialisation."""

    def __init__(self, graph: "ReactiveGraph", upstreams: Sequence[Signal],
                 factory: Callable[["ReactiveGraph", Sequence[Node]], Node], name: Optional[str] = None):
        super().__init__(graph, name)
        for upstream in upstreams:
            if upstream.graph is not graph:
                raise SignalError(f"Cannot combine {upstream!r} from a different graph")
        self.upstreams = tuple(upstreams)
        self._factory = factory

    def materialize(self) -> Node:
        nodes = [upstream.materialize() for upstream in self.upstreams]
        node = self._factory(self.graph, nodes)
        node.connect()
        return node.acquire()


class SharedSignal(Signal[T]):
    """
    One reference-counted materialisation of the upstream chain.

    The first consumer connects the chain, later consumers reuse the same
    node, and the chain disconnects when the last consumer releases it.
    """

    def __init__(self, upstream: Signal[T]):
        super().__init__(upstream.graph, f"{upstream.name}.share")
        self.upstream = upstream
        self._node: Optional[Node] = None

    def materialize(self) -> Node:
        if self._node is not None and not self._node.disposed:
            return self._node.acquire()
        node = self.upstream.materialize()
        node.add_dispose_hook(self._forget)
        self._node = node
        return node

    def _forget(self, node: Node) -> None:
        if self._node is node:
            self._node = None

    @property
    def connected(self) -> bool:
        return self._node is not None

    @property
    def has_value(self) -> bool:
        return self._node is not None and self._node.has_value

    @property
    def value(self) -> T:
        if not self.has_value:
            raise EmptySignalError(f"Signal {self.name!r} has no current value")
        return self._node.value

    def share(self) -> "SharedSignal[T]":
        return self


def just(graph: "ReactiveGraph", value: T, name: Optional[str] = None) -> Signal[T]:
    """Signal that already holds value."""
    name = name or "just"
    return DerivedSignal(graph, (), lambda g, _: ConstantNode(g, value, name), name)


def from_awaitable(graph: "ReactiveGraph", factory: Callable[[], Awaitable[T]],
                   name: Optional[str] = None) -> Signal[T]:
    """Cold signal running factory() per consumer and emitting its result once."""
    name = name or "from_awaitable"
    return DerivedSignal(graph, (), lambda g, _: AwaitableNode(g, factory, name), name)


def combine_latest(*signals: Signal, name: Optional[str] = None) -> Signal[tuple]:
    """Tuple of the latest values of signals, emitted once all have produced."""
    if not signals:
        raise SignalError("combine_latest needs at least one signal")
    graph = signals[0].graph
    name = name or "combine_latest(" + ", ".join(s.name for s in signals) + ")"
    return DerivedSignal(graph, signals, lambda g, up: CombineLatestNode(g, up, name), name)
