"""
Sign-Up Form Validation Model

⚡ Reactive Orchestration:
Wires the three raw inputs (username, password, password confirmation)
through the signal graph into the outputs a UI binds to:

- username_message / username_status: length rule plus debounced,
  deduplicated, last-request-wins availability lookup
- password_message: empty takes precedence over mismatch
- requirements: the five PasswordRequirement records, mutated in place
- is_valid: username valid AND password valid

Every output is a shared signal with a `.value` and `subscribe()`. All
outputs are updated within the same propagation pass, so an observer never
sees one output updated and another stale.

Building the model arms the username debounce timer, so with the default
AsyncioScheduler it must be created inside a running event loop (or given a
scheduler bound to one with loop=).

Example:
    async def main():
        model = FormValidationModel(HttpAvailabilityChecker())
        model.is_valid.subscribe(lambda ok: print("submit enabled" if ok else "submit disabled"))
        model.username.value = "alice123"
        await asyncio.sleep(1)
        await model.aclose()

    asyncio.run(main())
"""

import logging
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel

from ..core.graph import ReactiveGraph
from ..core.nodes import Subscription
from ..core.rules import PasswordRequirement, create_requirements, default_rules, evaluate_rules
from ..core.scheduler import Scheduler
from ..core.signals import MutableSignal, SharedSignal, Signal, combine_latest
from .availability import Availability, AvailabilityChecker, FailClosedChecker
from .config import FormConfig

logger = logging.getLogger(__name__)


class UsernameStatus(str, Enum):
    VALID = "valid"
    TOO_SHORT = "too_short"
    NOT_AVAILABLE = "not_available"


class FormState(BaseModel):
    """Snapshot of every output at one point in time."""
    username: str
    username_status: UsernameStatus
    username_message: str
    password_message: str
    requirements: List[PasswordRequirement]
    is_valid: bool


class FormValidationModel:
    """
    Reactive validation for the sign-up form.

    Args:
        checker: Availability capability; wrapped in FailClosedChecker unless it already is one
        config: Thresholds and messages, defaults to FormConfig()
        scheduler: Event queue for debounce timers and lookups, ignored when graph is given
        graph: Existing graph to build the signals in
    """

    def __init__(self, checker: AvailabilityChecker, config: Optional[FormConfig] = None,
                 scheduler: Optional[Scheduler] = None, graph: Optional[ReactiveGraph] = None):
        self.config = config or FormConfig()
        self.graph = graph or ReactiveGraph(scheduler)
        if not isinstance(checker, FailClosedChecker):
            checker = FailClosedChecker(checker)
        self.checker = checker
        self.checks_started = 0

        self.rules = default_rules(self.config.validation.min_password_length,
                                   self.config.validation.special_characters)
        self.requirement_array: List[PasswordRequirement] = create_requirements(self.rules)

        # Input
        self.username: MutableSignal[str] = self.graph.signal("", name="username")
        self.password: MutableSignal[str] = self.graph.signal("", name="password")
        self.password_confirmation: MutableSignal[str] = self.graph.signal("", name="password_confirmation")

        self._subscriptions: List[Subscription] = []
        self._wire()

    def _wire(self) -> None:
        validation = self.config.validation

        # Username
        self.is_username_length_valid = self.username.map(
            lambda name: len(name) >= validation.min_username_length,
            name="is_username_length_valid",
        ).share()

        self.availability: SharedSignal[Optional[Availability]] = (
            self.username
            .debounce(validation.debounce_seconds)
            .remove_duplicates()
            .flat_map_latest(self._check_username)
            .start_with(None)
            .share()
        )

        self.is_username_available = combine_latest(self.username, self.availability).map(
            self._matches_current_username, name="is_username_available",
        ).share()

        self.username_status: SharedSignal[UsernameStatus] = combine_latest(
            self.is_username_length_valid, self.is_username_available,
        ).map(self._username_status, name="username_status").share()

        self.username_message: SharedSignal[str] = self.username_status.map(
            self._username_message, name="username_message",
        ).share()

        self.is_username_valid = self.username_status.map(
            lambda status: status is UsernameStatus.VALID, name="is_username_valid",
        ).share()

        # Password
        self.is_password_empty = self.password.map(lambda text: not text, name="is_password_empty").share()

        self.is_password_matching = combine_latest(self.password, self.password_confirmation).map(
            lambda pair: pair[0] == pair[1], name="is_password_matching",
        ).share()

        self.rule_results: SharedSignal[Tuple[bool, ...]] = (
            self.password
            .map(lambda text: evaluate_rules(self.rules, text), name="rule_results")
            .tap(self._apply_requirements)
            .share()
        )

        self.requirements: SharedSignal[Tuple[PasswordRequirement, ...]] = self.rule_results.map(
            lambda _: tuple(self.requirement_array), name="requirements",
        ).share()

        self.is_password_valid = combine_latest(
            self.is_password_empty, self.is_password_matching, self.rule_results,
        ).map(
            lambda values: not values[0] and values[1] and all(values[2]), name="is_password_valid",
        ).share()

        self.password_message: SharedSignal[str] = combine_latest(
            self.is_password_empty, self.is_password_matching,
        ).map(self._password_message, name="password_message").share()

        # Form
        self.is_valid: SharedSignal[bool] = combine_latest(
            self.is_username_valid, self.is_password_valid,
        ).map(lambda values: values[0] and values[1], name="is_valid").share()

        for output in (self.username_message, self.password_message, self.requirements,
                       self.username_status, self.is_valid):
            self._subscriptions.append(output.subscribe(self._ignore))

    @staticmethod
    def _ignore(_: Any) -> None:
        pass

    # Username branch

    def _check_username(self, username: str) -> Signal[Availability]:
        if len(username) < self.config.validation.min_username_length:
            return self.graph.just(Availability(username=username, available=False), name="too_short")

        self.checks_started += 1
        logger.info(f"Checking availability of {username!r}")

        async def lookup() -> Availability:
            available = await self.checker.check_availability(username)
            return Availability(username=username, available=available)

        return self.graph.from_awaitable(lookup, name=f"availability({username})")

    @staticmethod
    def _matches_current_username(values: Tuple[str, Optional[Availability]]) -> bool:
        username, result = values
        return result is not None and result.username == username and result.available

    @staticmethod
    def _username_status(values: Tuple[bool, bool]) -> UsernameStatus:
        long_enough, available = values
        if not long_enough:
            return UsernameStatus.TOO_SHORT
        if not available:
            return UsernameStatus.NOT_AVAILABLE
        return UsernameStatus.VALID

    def _username_message(self, status: UsernameStatus) -> str:
        messages = self.config.messages
        if status is UsernameStatus.TOO_SHORT:
            return messages.username_too_short
        if status is UsernameStatus.NOT_AVAILABLE:
            return messages.username_not_available
        return messages.username_available

    # Password branch

    def _apply_requirements(self, results: Tuple[bool, ...]) -> None:
        for requirement, passed in zip(self.requirement_array, results):
            requirement.valid_state = passed

    def _password_message(self, values: Tuple[bool, bool]) -> str:
        is_empty, is_matching = values
        if is_empty:
            return self.config.messages.password_empty
        if not is_matching:
            return self.config.messages.password_mismatch
        return ""

    # Public API

    @property
    def state(self) -> FormState:
        """Current values of every output."""
        return FormState(
            username=self.username.value,
            username_status=self.username_status.value,
            username_message=self.username_message.value,
            password_message=self.password_message.value,
            requirements=[requirement.model_copy() for requirement in self.requirement_array],
            is_valid=self.is_valid.value,
        )

    def close(self) -> None:
        """Release every output subscription, cancelling pending timers and lookups."""
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    async def aclose(self) -> None:
        self.close()
        await self.checker.aclose()
