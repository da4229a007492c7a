"""
Sign-Up Form Model Tests

Drives FormValidationModel on a virtual clock: typing is simulated by
setting the input signals, the debounce window by advancing the
scheduler, and availability answers come from in-memory checkers.
"""

import asyncio

import pytest

from signalform.app.availability import AvailabilityChecker, StaticAvailabilityChecker, TransportFailure
from signalform.app.config import FormConfig, ValidationConfig
from signalform.app.form import FormState, FormValidationModel, UsernameStatus
from signalform.core.rules import evaluate_rules
from signalform.core.scheduler import AsyncioScheduler

from conftest import settle

DEBOUNCE = 0.5
GOOD_PASSWORD = "Abcdefg1!"


class BrokenChecker(AvailabilityChecker):
    def __init__(self, error: Exception):
        self.error = error

    async def check_availability(self, username: str) -> bool:
        raise self.error


@pytest.fixture
def config():
    return FormConfig(validation=ValidationConfig(debounce_seconds=DEBOUNCE))


@pytest.fixture
def static_checker():
    return StaticAvailabilityChecker(taken=["taken"])


@pytest.fixture
def model(static_checker, config, scheduler):
    form = FormValidationModel(static_checker, config=config, scheduler=scheduler)
    yield form
    form.close()


async def type_username(model, scheduler, username):
    """Set the username and let the debounce window and lookup complete."""
    model.username.value = username
    scheduler.advance(DEBOUNCE)
    await scheduler.drain()


def fill_password(model, password=GOOD_PASSWORD, confirmation=None):
    model.password.value = password
    model.password_confirmation.value = password if confirmation is None else confirmation


class TestInitialState:

    def test_outputs_are_available_immediately(self, model, static_checker):
        assert model.username_message.value == "Username must be at least three characters!"
        assert model.username_status.value is UsernameStatus.TOO_SHORT
        assert model.password_message.value == "Password must not be empty"
        assert model.is_valid.value is False
        assert all(not requirement.valid_state for requirement in model.requirements.value)
        assert static_checker.requests == []

    def test_state_snapshot(self, model):
        state = model.state
        assert isinstance(state, FormState)
        assert state.username == ""
        assert state.username_status is UsernameStatus.TOO_SHORT
        assert len(state.requirements) == 5
        assert state.is_valid is False


class TestUsername:

    def test_short_username_never_hits_the_checker(self, model, scheduler, static_checker):
        model.username.value = "ab"
        scheduler.advance(DEBOUNCE * 4)

        assert model.username_message.value == "Username must be at least three characters!"
        assert static_checker.requests == []
        assert model.checks_started == 0

    @pytest.mark.asyncio
    async def test_available_username_clears_the_message(self, model, scheduler, static_checker):
        await type_username(model, scheduler, "alice")

        assert static_checker.requests == ["alice"]
        assert model.username_status.value is UsernameStatus.VALID
        assert model.username_message.value == ""
        print("✓ Available username accepted")

    @pytest.mark.asyncio
    async def test_taken_username(self, model, scheduler):
        await type_username(model, scheduler, "TAKEN")

        assert model.username_status.value is UsernameStatus.NOT_AVAILABLE
        assert model.username_message.value == "Username not available, try different one"

    @pytest.mark.asyncio
    async def test_pending_check_counts_as_not_available(self, model, scheduler):
        model.username.value = "alice"
        assert model.username_status.value is UsernameStatus.NOT_AVAILABLE
        assert model.is_username_valid.value is False

        scheduler.advance(DEBOUNCE)
        await scheduler.drain()
        assert model.is_username_valid.value is True

    @pytest.mark.asyncio
    async def test_typing_burst_issues_one_request(self, model, scheduler, static_checker):
        for prefix in ("a", "al", "ali", "alic", "alice"):
            model.username.value = prefix
            scheduler.advance(DEBOUNCE / 2)
        scheduler.advance(DEBOUNCE / 2)
        await scheduler.drain()

        assert static_checker.requests == ["alice"]
        assert model.checks_started == 1

    @pytest.mark.asyncio
    async def test_same_username_after_debounce_is_not_rechecked(self, model, scheduler, static_checker):
        await type_username(model, scheduler, "alice")

        model.username.value = "alicex"
        scheduler.advance(DEBOUNCE / 2)
        model.username.value = "alice"
        scheduler.advance(DEBOUNCE)
        await scheduler.drain()

        assert static_checker.requests == ["alice"]
        assert model.username_status.value is UsernameStatus.VALID

    @pytest.mark.asyncio
    async def test_shared_availability_runs_one_lookup_per_username(self, model, scheduler, static_checker):
        observed = []
        model.availability.subscribe(observed.append)
        model.is_username_available.subscribe(lambda _: None)

        await type_username(model, scheduler, "alice")
        await type_username(model, scheduler, "bobby")

        assert static_checker.requests == ["alice", "bobby"]


class TestLastRequestWins:

    @pytest.fixture
    def model(self, controlled_checker, config, scheduler):
        form = FormValidationModel(controlled_checker, config=config, scheduler=scheduler)
        yield form
        form.close()

    @pytest.mark.asyncio
    async def test_superseded_lookup_is_cancelled(self, model, scheduler, controlled_checker):
        model.username.value = "alice"
        scheduler.advance(DEBOUNCE)
        await settle()

        model.username.value = "bobby"
        scheduler.advance(DEBOUNCE)
        await settle()

        assert controlled_checker.requests == ["alice", "bobby"]
        assert controlled_checker.cancelled == ["alice"]
        assert controlled_checker.resolve("alice", True) is False

        controlled_checker.resolve("bobby", True)
        await settle()
        assert model.username_status.value is UsernameStatus.VALID

    @pytest.mark.asyncio
    async def test_answer_for_previous_username_does_not_validate_edit(self, model, scheduler,
                                                                       controlled_checker):
        model.username.value = "alice"
        scheduler.advance(DEBOUNCE)
        await settle()

        model.username.value = "alicex"
        controlled_checker.resolve("alice", True)
        await settle()

        assert model.availability.value.username == "alice"
        assert model.username_status.value is UsernameStatus.NOT_AVAILABLE
        assert model.is_valid.value is False

    @pytest.mark.asyncio
    async def test_late_true_never_overrides_too_short(self, model, scheduler, controlled_checker):
        model.username.value = "alice"
        scheduler.advance(DEBOUNCE)
        await settle()

        model.username.value = "al"
        scheduler.advance(DEBOUNCE)
        await settle()

        assert controlled_checker.resolve("alice", True) is False
        await settle()
        assert model.username_message.value == "Username must be at least three characters!"


class TestFailClosed:

    @pytest.mark.asyncio
    async def test_checker_failure_reads_as_not_available(self, config, scheduler, caplog):
        model = FormValidationModel(BrokenChecker(TransportFailure("connection refused")),
                                    config=config, scheduler=scheduler)
        fill_password(model)
        await type_username(model, scheduler, "alice")

        assert model.username_message.value == "Username not available, try different one"
        assert model.is_valid.value is False
        assert model.checker.failures == 1
        assert "treating as unavailable" in caplog.text
        model.close()

    @pytest.mark.asyncio
    async def test_unexpected_exception_reads_as_not_available(self, config, scheduler):
        model = FormValidationModel(BrokenChecker(KeyError("boom")), config=config, scheduler=scheduler)
        await type_username(model, scheduler, "alice")

        assert model.username_status.value is UsernameStatus.NOT_AVAILABLE
        model.close()


class TestPassword:

    def test_mismatch_message(self, model):
        fill_password(model, confirmation="Abcdefg1")
        assert model.password_message.value == "Passwords do not match"

    def test_empty_takes_precedence_over_mismatch(self, model):
        fill_password(model, password="", confirmation="something")
        assert model.password_message.value == "Password must not be empty"

    def test_matching_password_clears_message(self, model):
        fill_password(model)
        assert model.password_message.value == ""
        assert model.is_password_valid.value is True

    def test_requirements_are_updated_in_place(self, model):
        requirements = model.requirements.value
        model.password.value = "abc"
        assert [requirement.valid_state for requirement in requirements] == [False, False, True, False, False]
        assert model.requirements.value[2] is requirements[2]

    def test_short_password_without_confirmation(self, model):
        model.password.value = "short"

        assert model.password_message.value == "Passwords do not match"
        assert tuple(requirement.valid_state for requirement in model.requirements.value) == (
            False, False, True, False, False)
        assert model.is_valid.value is False

    def test_matching_but_weak_password_is_invalid(self, model):
        fill_password(model, password="abc")
        assert model.password_message.value == ""
        assert model.is_password_valid.value is False

    def test_observers_see_requirements_for_the_current_password(self, model):
        seen = []

        def check(requirements):
            expected = evaluate_rules(model.rules, model.password.value)
            assert tuple(requirement.valid_state for requirement in requirements) == expected
            seen.append(model.password.value)

        model.requirements.subscribe(check)
        for text in ("a", "aB", "aB3", "aB3!efgh"):
            model.password.value = text

        assert seen == ["", "a", "aB", "aB3", "aB3!efgh"]


class TestWholeForm:

    @pytest.mark.asyncio
    async def test_valid_form(self, model, scheduler):
        fill_password(model)
        await type_username(model, scheduler, "alice")

        assert model.is_valid.value is True
        assert model.username_message.value == ""
        assert model.password_message.value == ""
        assert all(requirement.valid_state for requirement in model.requirements.value)

    @pytest.mark.asyncio
    async def test_sign_up_scenario(self, model, scheduler):
        model.username.value = "alice123"
        model.password.value = "Abcdefg1!"
        model.password_confirmation.value = "Abcdefg1!"
        scheduler.advance(DEBOUNCE)
        await scheduler.drain()

        state = model.state
        assert state.is_valid is True
        assert state.username_message == ""
        assert state.password_message == ""
        assert all(requirement.valid_state for requirement in state.requirements)

    @pytest.mark.asyncio
    async def test_editing_any_field_can_invalidate(self, model, scheduler):
        fill_password(model)
        await type_username(model, scheduler, "alice")
        assert model.is_valid.value is True

        model.password_confirmation.value = GOOD_PASSWORD + "x"
        assert model.is_valid.value is False
        model.password_confirmation.value = GOOD_PASSWORD
        assert model.is_valid.value is True

        model.username.value = "al"
        assert model.is_valid.value is False

    @pytest.mark.asyncio
    async def test_is_valid_never_reported_torn(self, model, scheduler):
        reported = []

        def check(valid):
            if valid:
                assert model.username_message.value == ""
                assert model.password_message.value == ""
            reported.append(valid)

        model.is_valid.subscribe(check)
        fill_password(model)
        await type_username(model, scheduler, "alice")
        model.username.value = "alic"

        assert reported[-1] is False
        assert True in reported

    def test_close_cancels_pending_timers(self, model, scheduler):
        model.username.value = "alice"
        assert scheduler.pending_timers == 1

        model.close()
        assert scheduler.pending_timers == 0


@pytest.mark.asyncio
async def test_end_to_end_on_the_running_loop():
    config = FormConfig(validation=ValidationConfig(debounce_seconds=0.02))
    checker = StaticAvailabilityChecker(taken=["root"])
    model = FormValidationModel(checker, config=config, scheduler=AsyncioScheduler())
    try:
        fill_password(model)
        model.username.value = "root"
        await asyncio.sleep(0.1)
        assert model.username_status.value is UsernameStatus.NOT_AVAILABLE

        model.username.value = "rooted"
        await asyncio.sleep(0.1)
        assert model.is_valid.value is True
        assert checker.requests == ["root", "rooted"]
    finally:
        await model.aclose()


def test_default_scheduler_needs_a_loop_at_construction():
    with pytest.raises(RuntimeError, match="running event loop"):
        FormValidationModel(StaticAvailabilityChecker(), scheduler=AsyncioScheduler())


def test_scheduler_bound_to_a_loop_can_build_the_model_up_front():
    loop = asyncio.new_event_loop()
    try:
        model = FormValidationModel(StaticAvailabilityChecker(), scheduler=AsyncioScheduler(loop=loop))
        assert model.username_status.value is UsernameStatus.TOO_SHORT
        model.close()
    finally:
        loop.close()
