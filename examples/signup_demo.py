"""
📝 Sign-Up Form Demo

Simulates a user filling in the sign-up form and prints every output as it
changes. Runs against an in-memory availability checker by default, or
against a running availability service with --url:

    signalform-availability --taken admin &
    python examples/signup_demo.py --url http://127.0.0.1:8080
"""

import argparse
import asyncio

from signalform import FormConfig, FormValidationModel, StaticAvailabilityChecker, configure_logging
from signalform.adapters import HttpAvailabilityChecker

KEYSTROKES = [
    ("username", "a"),
    ("username", "ad"),
    ("username", "adm"),
    ("username", "admi"),
    ("username", "admin"),
    ("pause", None),
    ("username", "admin_2"),
    ("pause", None),
    ("password", "hunter"),
    ("password", "Hunter2!x"),
    ("password_confirmation", "Hunter2!"),
    ("password_confirmation", "Hunter2!x"),
]


async def main(url: str = None, typing_delay: float = 0.1):
    config = FormConfig.from_environment()
    configure_logging(config.logging)

    if url:
        config.availability.base_url = url
        checker = HttpAvailabilityChecker.from_config(config.availability)
    else:
        checker = StaticAvailabilityChecker(taken=["admin", "root"], delay=0.2)

    model = FormValidationModel(checker, config=config)
    model.username_message.subscribe(lambda message: print(f"  username: {message or '✓'}"))
    model.password_message.subscribe(lambda message: print(f"  password: {message or '✓'}"))
    model.is_valid.subscribe(lambda valid: print(f"  submit {'enabled' if valid else 'disabled'}"))

    try:
        for field_name, text in KEYSTROKES:
            if field_name == "pause":
                await asyncio.sleep(config.validation.debounce_seconds + 0.5)
                continue
            print(f"{field_name} <- {text!r}")
            getattr(model, field_name).value = text
            await asyncio.sleep(typing_delay)

        await asyncio.sleep(config.validation.debounce_seconds + 0.5)
        print("\nRequirements:")
        for requirement in model.requirement_array:
            print(f"  {'✓' if requirement.valid_state else '✗'} {requirement.message}")
        print(f"\nFinal state: {model.state.model_dump_json(indent=2)}")
    finally:
        await model.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulated sign-up form session")
    parser.add_argument("--url", help="Base URL of a running availability service")
    args = parser.parse_args()
    asyncio.run(main(args.url))
