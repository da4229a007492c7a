"""
Reactive Graph - Glitch-Free Propagation

🔄 One Event, One Pass:
Every change (a keystroke, a debounce timer firing, a network response)
enters the graph as one event. An event runs one synchronous pass:

1. The origin node takes the new value
2. Dependents recompute in ascending rank order, each at most once,
   so a node always sees every upstream already updated for this event
3. External subscribers are notified after the pass, in emission order

Events raised while a pass or its notifications are running are queued
and processed afterwards, so passes never interleave.
"""

import heapq
import itertools
import logging
import threading
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set, Tuple, TypeVar

from .nodes import EMPTY, CrossThreadError, Node, Subscription
from .scheduler import AsyncioScheduler, Scheduler
from .signals import MutableSignal, Signal, combine_latest, from_awaitable, just

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReactiveGraph:
    """
    Owner of a set of signals and the event queue that drives them.

    All propagation happens on the thread that raised the first event;
    use MutableSignal.send_threadsafe from other threads.
    """

    def __init__(self, scheduler: Optional[Scheduler] = None):
        self.scheduler = scheduler or AsyncioScheduler()
        self.passes = 0
        self._pass_ids = itertools.count(1)
        self._pending: Deque[Tuple[Node, Any]] = deque()
        self._busy = False
        self._owner_thread: Optional[int] = None

    # Signal factories

    def signal(self, initial: Any = EMPTY, name: Optional[str] = None) -> MutableSignal:
        """Create a source signal; without initial it starts empty."""
        return MutableSignal(self, initial, name)

    def just(self, value: T, name: Optional[str] = None) -> Signal[T]:
        return just(self, value, name)

    def from_awaitable(self, factory: Callable[[], Awaitable[T]], name: Optional[str] = None) -> Signal[T]:
        return from_awaitable(self, factory, name)

    def combine_latest(self, *signals: Signal, name: Optional[str] = None) -> Signal[tuple]:
        return combine_latest(*signals, name=name)

    # Propagation

    @property
    def busy(self) -> bool:
        """True while a pass or its notifications are running."""
        return self._busy

    def emit(self, origin: Node, value: Any) -> None:
        """
        Raise an event: origin takes value and the change propagates.

        Re-entrant calls are queued behind the running event.
        """
        self._check_thread()
        self._pending.append((origin, value))
        if self._busy:
            return

        self._busy = True
        try:
            while self._pending:
                node, node_value = self._pending.popleft()
                if node.disposed:
                    logger.debug(f"Skipping event for disposed node {node.name}")
                    continue
                self._run_pass(node, node_value)
        except Exception:
            dropped = len(self._pending)
            self._pending.clear()
            if dropped:
                logger.warning(f"Dropped {dropped} queued event(s) after a failed pass")
            raise
        finally:
            self._busy = False

    def _run_pass(self, origin: Node, value: Any) -> None:
        pass_id = next(self._pass_ids)
        origin.set_value(value, pass_id)

        emitted: List[Node] = [origin]
        heap: List[Tuple[int, int, Node]] = []
        queued: Set[int] = set()
        order = itertools.count()

        def schedule_dependents(node: Node) -> None:
            for dependent in node.dependents:
                if id(dependent) not in queued:
                    queued.add(id(dependent))
                    heapq.heappush(heap, (dependent.rank, next(order), dependent))

        schedule_dependents(origin)
        while heap:
            _, _, node = heapq.heappop(heap)
            if node.disposed:
                continue
            if node.recompute(pass_id):
                emitted.append(node)
                schedule_dependents(node)

        self.passes += 1
        notifications: List[Tuple[Subscription, Any]] = [
            (subscription, node.value)
            for node in emitted
            for subscription in list(node.subscribers)
        ]
        for subscription, node_value in notifications:
            subscription.deliver(node_value)

    def _check_thread(self) -> None:
        ident = threading.get_ident()
        if self._owner_thread is None:
            self._owner_thread = ident
        elif ident != self._owner_thread:
            raise CrossThreadError(
                "Signal graph mutated from a foreign thread; use send_threadsafe() "
                "to funnel values onto the scheduler thread"
            )
