"""
SignalForm Core - Reactive Graph and Password Rules

The dependency-tracking engine (signals, nodes, scheduler, propagation)
and the pure password rules it evaluates.
"""

from .nodes import EMPTY, SignalError, EmptySignalError, CrossThreadError, Subscription
from .scheduler import Scheduler, AsyncioScheduler, VirtualTimeScheduler
from .signals import Signal, MutableSignal, DerivedSignal, SharedSignal, combine_latest, just, from_awaitable
from .graph import ReactiveGraph
from .rules import (
    PasswordRule, PasswordRequirement, ValidationRule, SPECIAL_CHARACTERS, MIN_PASSWORD_LENGTH,
    default_rules, evaluate_rules, create_requirements,
)

__all__ = [
    # Graph
    "ReactiveGraph", "Signal", "MutableSignal", "DerivedSignal", "SharedSignal",
    "combine_latest", "just", "from_awaitable", "Subscription", "EMPTY",

    # Scheduling
    "Scheduler", "AsyncioScheduler", "VirtualTimeScheduler",

    # Errors
    "SignalError", "EmptySignalError", "CrossThreadError",

    # Rules
    "PasswordRule", "PasswordRequirement", "ValidationRule", "SPECIAL_CHARACTERS",
    "MIN_PASSWORD_LENGTH", "default_rules", "evaluate_rules", "create_requirements",
]
