"""
Shared fixtures for the SignalForm test suite.
"""

import asyncio
from typing import Dict, List

import pytest

from signalform.app.availability import AvailabilityChecker
from signalform.core.graph import ReactiveGraph
from signalform.core.scheduler import VirtualTimeScheduler


class ControlledChecker(AvailabilityChecker):
    """Checker whose answers the test hands out explicitly, in any order."""

    def __init__(self):
        self.requests: List[str] = []
        self.cancelled: List[str] = []
        self.pending: Dict[str, asyncio.Future] = {}

    async def check_availability(self, username: str) -> bool:
        self.requests.append(username)
        future = asyncio.get_running_loop().create_future()
        self.pending[username] = future
        try:
            return await future
        except asyncio.CancelledError:
            self.cancelled.append(username)
            raise

    def resolve(self, username: str, available: bool) -> bool:
        """Answer a lookup; returns False if it was already cancelled."""
        future = self.pending[username]
        if future.done():
            return False
        future.set_result(available)
        return True


async def settle(rounds: int = 5) -> None:
    """Let spawned tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler():
    return VirtualTimeScheduler()


@pytest.fixture
def graph(scheduler):
    return ReactiveGraph(scheduler)


@pytest.fixture
def controlled_checker():
    return ControlledChecker()
