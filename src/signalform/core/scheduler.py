"""
Scheduler - Single-Threaded Event Queue

⏱️ Logical Time for the Reactive Graph:
Every change that enters the signal graph is delivered on one thread.
Debounce timers and spawned async work (availability checks) resolve on the
same asyncio event loop, so propagation passes never overlap.

Implementations:
- AsyncioScheduler: wall-clock timers on the running asyncio loop
- VirtualTimeScheduler: logical clock advanced explicitly, for tests and simulations
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Scheduler(ABC):
    """Abstract event queue driving the reactive graph."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], Any]) -> Any:
        """
        Run callback after delay seconds.

        Returns:
            A handle with a cancel() method
        """
        pass

    @abstractmethod
    def call_soon_threadsafe(self, callback: Callable[[], Any]) -> None:
        """Queue callback onto the scheduler thread from any thread."""
        pass

    @abstractmethod
    def spawn(self, factory: Callable[[], Awaitable[T]], on_result: Callable[[T], None]) -> Any:
        """
        Start async work and deliver its result on the scheduler thread.

        Args:
            factory: Zero-argument callable returning an awaitable
            on_result: Called with the result unless the work was cancelled or failed

        Returns:
            A handle with a cancel() method
        """
        pass


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop.

    The loop is resolved lazily from the running loop, so a scheduler may be
    created before the loop starts as long as it is first used inside it.
    Anything that arms a timer on construction (a debounced signal, the
    form model) counts as a use.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    f"{self.__class__.__name__} needs a running event loop; "
                    "create it inside a coroutine or pass loop= explicitly"
                ) from exc
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback)

    def call_soon_threadsafe(self, callback: Callable[[], Any]) -> None:
        self.loop.call_soon_threadsafe(callback)

    def spawn(self, factory: Callable[[], Awaitable[T]], on_result: Callable[[T], None]) -> asyncio.Task:
        task = self.loop.create_task(self._run(factory, on_result))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, factory: Callable[[], Awaitable[T]], on_result: Callable[[T], None]) -> None:
        try:
            result = await factory()
        except asyncio.CancelledError:
            logger.debug("Spawned work cancelled before completion")
            raise
        except Exception:
            logger.exception("Spawned work failed, no value delivered")
            return
        on_result(result)

    @property
    def pending_tasks(self) -> int:
        """Number of spawned tasks that have not finished yet."""
        return len(self._tasks)

    async def drain(self) -> None:
        """
        Wait until every spawned task, including ones spawned while
        waiting, has finished. Re-raises the first error a result
        callback raised.
        """
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    raise result


class _VirtualTimer:
    __slots__ = ("when", "callback", "cancelled")

    def __init__(self, when: float, callback: Callable[[], Any]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self):
        state = "cancelled" if self.cancelled else "armed"
        return f"_VirtualTimer(when={self.when}, {state})"


class VirtualTimeScheduler(AsyncioScheduler):
    """
    Scheduler with a logical clock.

    Timers only fire from advance(); spawned work still runs as asyncio
    tasks, so tests await drain() to let it finish.
    """

    def __init__(self, start: float = 0.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__(loop)
        self._now = start
        self._queue: List[Tuple[float, int, _VirtualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _VirtualTimer:
        timer = _VirtualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.when, next(self._sequence), timer))
        return timer

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing due timers in deadline order.

        Timers scheduled by a firing callback run in the same call if they
        fall due before the new time.

        Returns:
            Number of timers fired
        """
        if seconds < 0:
            raise ValueError("Cannot move virtual time backwards")

        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
            fired += 1
        self._now = target
        return fired

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)
