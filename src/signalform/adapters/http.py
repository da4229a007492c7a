"""
HTTP Availability Client

Client side of the availability wire contract:

    GET <base_url>/isUserNameAvailable?userName=<name>
    200 {"isAvailable": true | false | null, "userName": "<name>" | null}

A missing or null isAvailable means the name is not available. Values of
the wrong JSON type (1, "true") are rejected as a DecodingFailure. Failures
are raised as the AvailabilityError kinds; wrap the client in
FailClosedChecker (FormValidationModel does this) to coerce them to False.
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from ..app.availability import (
    AvailabilityChecker, DecodingFailure, InvalidRequestError, NoDataError, ServerError, TransportFailure,
)
from ..app.config import AvailabilityConfig

logger = logging.getLogger(__name__)


class UserAvailability(BaseModel):
    """Wire payload of the availability service."""
    model_config = ConfigDict(populate_by_name=True)

    is_available: Optional[StrictBool] = Field(default=None, alias="isAvailable")
    user_name: Optional[StrictStr] = Field(default=None, alias="userName")


class HttpAvailabilityChecker(AvailabilityChecker):
    """
    Availability checker talking to the HTTP service with httpx.

    Args:
        base_url: Service root, e.g. "http://127.0.0.1:8080"
        path: Endpoint path
        timeout: Request timeout in seconds
        client: Shared AsyncClient; when omitted the checker owns one and closes it in aclose()
    """

    def __init__(self, base_url: str = "http://127.0.0.1:8080", path: str = "/isUserNameAvailable",
                 timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = base_url.rstrip("/") + path
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: AvailabilityConfig,
                    client: Optional[httpx.AsyncClient] = None) -> "HttpAvailabilityChecker":
        return cls(config.base_url, config.path, config.timeout_seconds, client)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def check_availability(self, username: str) -> bool:
        payload = await self.fetch(username)
        if payload.user_name is not None and payload.user_name != username:
            logger.warning(f"Availability service answered for {payload.user_name!r} "
                           f"when asked about {username!r}")
        return bool(payload.is_available)

    async def fetch(self, username: str) -> UserAvailability:
        """Request and decode the raw payload for username."""
        logger.debug(f"GET {self.url} userName={username!r}")
        try:
            response = await self.client.get(self.url, params={"userName": username})
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise InvalidRequestError(f"Invalid availability URL {self.url!r}: {e}") from e
        except httpx.TransportError as e:
            raise TransportFailure(f"Availability service unreachable: {e}") from e

        if not response.is_success:
            raise ServerError(response.status_code)

        if not response.content:
            raise NoDataError("Availability service returned an empty body")

        try:
            return UserAvailability.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodingFailure(f"Unexpected availability payload: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpAvailabilityChecker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
