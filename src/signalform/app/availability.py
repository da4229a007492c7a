"""
Username Availability

The capability the form needs from the outside world: given a username,
asynchronously answer whether it is free. Checkers may raise any of the
AvailabilityError kinds; FailClosedChecker is the boundary that maps every
failure onto "not available" so the reactive graph only ever sees booleans.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class AvailabilityError(Exception):
    """Base exception for availability lookups"""
    pass


class InvalidRequestError(AvailabilityError):
    """Raised when the request cannot be built (malformed URL or input)"""
    pass


class TransportFailure(AvailabilityError):
    """Raised when the service is unreachable"""
    pass


class ServerError(AvailabilityError):
    """Raised on a non-2xx response"""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message or f"Availability service returned HTTP {status_code}")
        self.status_code = status_code


class NoDataError(AvailabilityError):
    """Raised when the response has no body"""
    pass


class DecodingFailure(AvailabilityError):
    """Raised when the response body does not match the wire contract"""
    pass


class Availability(BaseModel):
    """Answer for one username."""
    model_config = ConfigDict(frozen=True)

    username: str
    available: bool


class AvailabilityChecker(ABC):
    """Abstract username availability capability."""

    @abstractmethod
    async def check_availability(self, username: str) -> bool:
        """
        Check whether username is free.

        Cancellation is task cancellation: a cancelled check must not
        deliver a result.

        Raises:
            AvailabilityError: on any lookup failure
        """
        pass

    async def aclose(self) -> None:
        """Release resources held by the checker."""
        pass


class FailClosedChecker(AvailabilityChecker):
    """
    Wraps a checker and maps every failure to False.

    Failures are logged, never propagated; cancellation still propagates.
    """

    def __init__(self, checker: AvailabilityChecker):
        self.checker = checker
        self.failures = 0

    async def check_availability(self, username: str) -> bool:
        try:
            return bool(await self.checker.check_availability(username))
        except AvailabilityError as e:
            self.failures += 1
            logger.warning(f"Availability check for {username!r} failed "
                           f"({type(e).__name__}: {e}); treating as unavailable")
            return False
        except Exception:
            self.failures += 1
            logger.exception(f"Unexpected error checking {username!r}; treating as unavailable")
            return False

    async def aclose(self) -> None:
        await self.checker.aclose()


class StaticAvailabilityChecker(AvailabilityChecker):
    """
    In-memory checker backed by a set of taken usernames.

    Useful for development, tests and the reference availability service.
    Records every requested username in `requests`.
    """

    def __init__(self, taken: Iterable[str] = (), delay: float = 0.0, case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        self.delay = delay
        self._taken = {self._key(name) for name in taken}
        self.requests: List[str] = []

    def _key(self, username: str) -> str:
        return username if self.case_sensitive else username.casefold()

    def reserve(self, username: str) -> None:
        self._taken.add(self._key(username))

    def release(self, username: str) -> None:
        self._taken.discard(self._key(username))

    def is_taken(self, username: str) -> bool:
        return self._key(username) in self._taken

    async def check_availability(self, username: str) -> bool:
        self.requests.append(username)
        if self.delay:
            await asyncio.sleep(self.delay)
        return not self.is_taken(username)


class ExecutorAvailabilityChecker(AvailabilityChecker):
    """
    Runs a blocking lookup function in an executor.

    The result comes back through the awaiting coroutine, so it lands on the
    event loop thread before touching any signal.
    """

    def __init__(self, lookup: Callable[[str], bool], executor: Optional[Executor] = None):
        self.lookup = lookup
        self.executor = executor

    async def check_availability(self, username: str) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.lookup, username)
