"""
Reference Availability Service

A small Starlette application serving the availability wire contract from
any AvailabilityChecker (an in-memory set of taken names by default). Used
for local development and as the server side in HTTP client tests.

Run it with:
    signalform-availability --port 8080 --taken admin --taken root
"""

import argparse
import logging
from typing import Iterable, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..app.availability import AvailabilityChecker, StaticAvailabilityChecker
from ..app.config import AvailabilityConfig, LoggingConfig, configure_logging
from .http import UserAvailability

logger = logging.getLogger(__name__)


def create_availability_app(checker: Optional[AvailabilityChecker] = None, taken: Iterable[str] = (),
                            path: str = AvailabilityConfig.path) -> Starlette:
    """
    Build the availability service.

    Args:
        checker: Source of truth; defaults to a StaticAvailabilityChecker over taken
        taken: Usernames reported as unavailable when no checker is given
        path: Endpoint path
    """
    checker = checker or StaticAvailabilityChecker(taken)

    async def is_username_available(request: Request) -> JSONResponse:
        username = request.query_params.get("userName")
        if not username:
            return JSONResponse(
                {"isAvailable": None, "userName": None, "error": "userName query parameter is required"},
                status_code=400,
            )

        available = await checker.check_availability(username)
        logger.info(f"Availability of {username!r}: {available}")
        payload = UserAvailability(is_available=available, user_name=username)
        return JSONResponse(payload.model_dump(by_alias=True))

    app = Starlette(routes=[Route(path, is_username_available, methods=["GET"])])
    app.state.checker = checker
    return app


def serve(argv: Optional[list] = None) -> None:
    """Command-line entry point for the reference service."""
    parser = argparse.ArgumentParser(description="Serve the username availability endpoint")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--taken", action="append", default=[], help="Username to report as taken")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    import uvicorn

    configure_logging(LoggingConfig(level=args.log_level.upper()))
    uvicorn.run(create_availability_app(taken=args.taken), host=args.host, port=args.port)


if __name__ == "__main__":
    serve()
