"""
SignalForm - Reactive Sign-Up Form Validation

A small signal graph (map, combine_latest, debounce, remove_duplicates,
flat_map_latest, share) driving live validation of a username / password /
confirmation form, with a debounced, last-request-wins username
availability check.
"""

from .core import (
    ReactiveGraph, Signal, MutableSignal, SharedSignal, Subscription, combine_latest, EMPTY,
    Scheduler, AsyncioScheduler, VirtualTimeScheduler,
    SignalError, EmptySignalError, CrossThreadError,
    PasswordRule, PasswordRequirement,
)
from .app import (
    FormValidationModel, FormState, UsernameStatus,
    Availability, AvailabilityChecker, FailClosedChecker, StaticAvailabilityChecker,
    AvailabilityError, FormConfig, configure_logging,
)
from .adapters import HttpAvailabilityChecker, create_availability_app

__version__ = "0.1.0"

__all__ = [
    # Reactive graph
    "ReactiveGraph", "Signal", "MutableSignal", "SharedSignal", "Subscription",
    "combine_latest", "EMPTY", "Scheduler", "AsyncioScheduler", "VirtualTimeScheduler",
    "SignalError", "EmptySignalError", "CrossThreadError",

    # Form
    "FormValidationModel", "FormState", "UsernameStatus", "PasswordRule", "PasswordRequirement",

    # Availability
    "Availability", "AvailabilityChecker", "FailClosedChecker", "StaticAvailabilityChecker",
    "AvailabilityError", "HttpAvailabilityChecker", "create_availability_app",

    # Configuration
    "FormConfig", "configure_logging",
]
