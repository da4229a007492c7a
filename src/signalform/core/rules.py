"""
Password Rules

Five pure rules evaluated against the current password text, and the
PasswordRequirement record the form exposes for each of them.
"""

from enum import IntEnum
from typing import Callable, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

SPECIAL_CHARACTERS = "!#$%&*"
MIN_PASSWORD_LENGTH = 8


class PasswordRule(IntEnum):
    """Rule identity; the value is the position in the requirement list."""
    LENGTH = 0
    UPPERCASE = 1
    LOWERCASE = 2
    DIGIT = 3
    SPECIAL = 4


def has_min_length(text: str, minimum: int = MIN_PASSWORD_LENGTH) -> bool:
    return len(text) >= minimum


def has_uppercase(text: str) -> bool:
    return any(char.isupper() for char in text)


def has_lowercase(text: str) -> bool:
    return any(char.islower() for char in text)


def has_digit(text: str) -> bool:
    return any(char.isdecimal() for char in text)


def has_special(text: str, characters: str = SPECIAL_CHARACTERS) -> bool:
    return any(char in characters for char in text)


class ValidationRule:
    """A single password rule: identity, predicate and the message shown for it."""

    def __init__(self, rule: PasswordRule, validator: Callable[[str], bool], message: str):
        self.rule = rule
        self.validator = validator
        self.message = message

    def validate(self, text: str) -> bool:
        return bool(self.validator(text))

    def __repr__(self):
        return f"ValidationRule({self.rule.name})"


class PasswordRequirement(BaseModel):
    """Current pass/fail state of one rule. Mutated in place as the password changes."""
    model_config = ConfigDict(validate_assignment=True)

    rule: PasswordRule
    valid_state: bool = False
    message: str = ""

    @property
    def id(self) -> int:
        return int(self.rule)


def default_rules(min_length: int = MIN_PASSWORD_LENGTH,
                  special_characters: str = SPECIAL_CHARACTERS) -> List[ValidationRule]:
    """The five rules in declaration order: length, uppercase, lowercase, digit, special."""
    return [
        ValidationRule(PasswordRule.LENGTH,
                       lambda text: has_min_length(text, min_length),
                       f"MUST contain at least {min_length} characters (12+ recommended)"),
        ValidationRule(PasswordRule.UPPERCASE, has_uppercase,
                       "MUST contain at least one uppercase letter"),
        ValidationRule(PasswordRule.LOWERCASE, has_lowercase,
                       "MUST contain at least one lowercase letter"),
        ValidationRule(PasswordRule.DIGIT, has_digit,
                       "MUST contain at least one number"),
        ValidationRule(PasswordRule.SPECIAL,
                       lambda text: has_special(text, special_characters),
                       f"MUST contain at least one special character [{special_characters}]"),
    ]


def evaluate_rules(rules: Sequence[ValidationRule], text: str) -> Tuple[bool, ...]:
    """Evaluate every rule against text, in rule order."""
    return tuple(rule.validate(text) for rule in rules)


def create_requirements(rules: Sequence[ValidationRule]) -> List[PasswordRequirement]:
    return [PasswordRequirement(rule=rule.rule, valid_state=False, message=rule.message) for rule in rules]
