"""
SignalForm Application Layer

The sign-up form model, the availability capability it depends on, and
configuration.
"""

from .availability import (
    Availability, AvailabilityChecker, FailClosedChecker, StaticAvailabilityChecker,
    ExecutorAvailabilityChecker, AvailabilityError, InvalidRequestError, TransportFailure,
    ServerError, NoDataError, DecodingFailure,
)
from .config import (
    Environment, FormConfig, ValidationConfig, AvailabilityConfig, FormMessages, LoggingConfig,
    configure_logging, get_config, set_config,
)
from .form import FormValidationModel, FormState, UsernameStatus

__all__ = [
    "FormValidationModel", "FormState", "UsernameStatus",
    "Availability", "AvailabilityChecker", "FailClosedChecker", "StaticAvailabilityChecker",
    "ExecutorAvailabilityChecker", "AvailabilityError", "InvalidRequestError", "TransportFailure",
    "ServerError", "NoDataError", "DecodingFailure",
    "Environment", "FormConfig", "ValidationConfig", "AvailabilityConfig", "FormMessages",
    "LoggingConfig", "configure_logging", "get_config", "set_config",
]
