"""Core module for the custody scenario generator: errors and logging."""

from core.exceptions import (
    CustodyGeneratorError,
    GeneratorPreconditionError,
    EmptyOutputListError,
    MissingStateTokenError,
    InvalidProtocolStateError,
    UnbalancedTransactionError,
    RedeemerDowncastError,
    PostconditionViolation,
    HarnessError,
    ValidatorRejection,
    ScenarioMismatchError,
    ValidatorLoadError,
    ConfigurationError,
)
from core.logging import configure_logging, current_context, LogContext

__all__ = [
    # Errors
    "CustodyGeneratorError",
    "GeneratorPreconditionError",
    "EmptyOutputListError",
    "MissingStateTokenError",
    "InvalidProtocolStateError",
    "UnbalancedTransactionError",
    "RedeemerDowncastError",
    "PostconditionViolation",
    "HarnessError",
    "ValidatorRejection",
    "ScenarioMismatchError",
    "ValidatorLoadError",
    "ConfigurationError",
    # Logging
    "configure_logging",
    "current_context",
    "LogContext",
]
