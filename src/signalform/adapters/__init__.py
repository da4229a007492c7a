"""
Adapters - Availability Service over HTTP

- http: httpx client for the availability wire contract
- starlette: reference service implementing the same contract
"""

from .http import HttpAvailabilityChecker, UserAvailability
from .starlette import create_availability_app

__all__ = ["HttpAvailabilityChecker", "UserAvailability", "create_availability_app"]
