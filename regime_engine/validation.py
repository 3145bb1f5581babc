"""
Validation results for the "no fallback" input policy.

Public operations check their required inputs eagerly and report the first
broken rule as a ValidationError instead of guessing a default. Callers that
want an exception use Outcome.unwrap(), which raises InvalidInputError.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar('T')


class ValidationRule(str, Enum):
    CANDLES_NOT_SEQUENCE = 'CANDLES_NOT_SEQUENCE'
    INSUFFICIENT_CANDLES = 'INSUFFICIENT_CANDLES'
    MISSING_TIMEFRAME = 'MISSING_TIMEFRAME'
    MISSING_COLLABORATOR = 'MISSING_COLLABORATOR'
    MISSING_TIMEFRAME_DATA = 'MISSING_TIMEFRAME_DATA'
    UNKNOWN_TRADING_MODE = 'UNKNOWN_TRADING_MODE'


@dataclass(frozen=True)
class ValidationError:
    rule: ValidationRule
    message: str

    def __str__(self) -> str:
        return f"[{self.rule.value}] {self.message}"


class InvalidInputError(ValueError):
    """Raised when a required input breaks a validation rule"""

    def __init__(self, error: ValidationError):
        super().__init__(str(error))
        self.error = error

    @property
    def rule(self) -> ValidationRule:
        return self.error.rule


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a computed value or the validation error that prevented it"""
    value: Optional[T] = None
    error: Optional[ValidationError] = None

    @classmethod
    def success(cls, value: T) -> 'Outcome[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, rule: ValidationRule, message: str) -> 'Outcome[T]':
        return cls(error=ValidationError(rule, message))

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise InvalidInputError(self.error)
        return self.value


def require(collaborator, name: str, owner: str) -> None:
    """Raise MISSING_COLLABORATOR if a constructor dependency is None"""
    if collaborator is None:
        raise InvalidInputError(ValidationError(
            ValidationRule.MISSING_COLLABORATOR,
            f"{owner} requires {name}, got None"
        ))
