"""Custom exceptions for the custody scenario generator.

Provides a hierarchy of exceptions separating generator defects (which
abort a single sample) from harness and configuration failures.
Expected protocol rejections are not exceptions: they are ``False``
verdicts returned by the validator under test.
"""

from typing import Any, Optional


class CustodyGeneratorError(Exception):
    """Base exception for all custody scenario generator errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ==================== Generator Errors ====================

class GeneratorPreconditionError(CustodyGeneratorError):
    """Raised when the generator breaches one of its own invariants.

    Always fatal to the sample being built; never a validator scenario.
    """
    pass


class EmptyOutputListError(GeneratorPreconditionError):
    """Raised when a positive quantity must be spread over no outputs."""

    def __init__(self, policy_id: bytes, asset_name: bytes, quantity: int):
        super().__init__(
            message=(
                f"Cannot distribute {quantity} of "
                f"{policy_id.hex() or 'lovelace'}.{asset_name.hex()} "
                f"over an empty output list"
            ),
            details={
                "policy_id": policy_id.hex(),
                "asset_name": asset_name.hex(),
                "quantity": quantity,
            }
        )
        self.quantity = quantity


class MissingStateTokenError(GeneratorPreconditionError):
    """Raised when unregistering without exactly one held state token."""

    def __init__(self, held: dict[str, int]):
        super().__init__(
            message=(
                "Unregistration requires exactly one unit of a known "
                f"delegate's state token, found {held or 'none'}"
            ),
            details={"held": held}
        )
        self.held = held


class InvalidProtocolStateError(GeneratorPreconditionError):
    """Raised when a protocol state breaks unregistered => registered."""

    def __init__(self, registered: bool, unregistered: bool):
        super().__init__(
            message="Protocol state cannot be unregistered without being registered",
            details={"registered": registered, "unregistered": unregistered}
        )


class UnbalancedTransactionError(GeneratorPreconditionError):
    """Raised when generated outputs exceed inputs plus mint."""

    def __init__(self, deficit: dict[str, int]):
        super().__init__(
            message=f"Generated transaction does not balance: deficit {deficit}",
            details={"deficit": deficit}
        )
        self.deficit = deficit


class RedeemerDowncastError(GeneratorPreconditionError):
    """Raised when redeemer data is not a multisig rule."""

    def __init__(self, data: Any, reason: str):
        super().__init__(
            message=f"Redeemer is not a multisig script: {reason}",
            details={"data": str(data)[:200], "reason": reason}
        )
        self.reason = reason


# ==================== Oracle Errors ====================

class PostconditionViolation(CustodyGeneratorError):
    """Raised when an assembled scenario breaks a cross-transaction law."""

    def __init__(self, rule: str, reason: str, step_index: Optional[int] = None):
        message = f"Post-condition '{rule}' violated: {reason}"
        if step_index is not None:
            message += f" (step {step_index})"
        super().__init__(
            message=message,
            details={"rule": rule, "reason": reason, "step_index": step_index}
        )
        self.rule = rule
        self.step_index = step_index


# ==================== Harness Errors ====================

class HarnessError(CustodyGeneratorError):
    """Base exception for validator harness errors."""
    pass


class ValidatorRejection(HarnessError):
    """May be raised by a validator entry point instead of returning False."""

    def __init__(self, entry_point: str, reason: str = "rejected"):
        super().__init__(
            message=f"Validator {entry_point} entry point failed: {reason}",
            details={"entry_point": entry_point, "reason": reason}
        )
        self.entry_point = entry_point
        self.reason = reason


class ScenarioMismatchError(HarnessError):
    """Raised when a scenario's verdict disagrees with its expectation."""

    def __init__(
        self,
        status: str,
        expected: str,
        labels: list[str],
        defect: Optional[str] = None
    ):
        message = f"Scenario {status}: expected {expected}"
        if labels:
            message += f" with labels {labels}"
        if defect:
            message += f" ({defect})"
        super().__init__(
            message=message,
            details={
                "status": status,
                "expected": expected,
                "labels": labels,
                "defect": defect,
            }
        )
        self.status = status
        self.expected = expected
        self.labels = labels


class ValidatorLoadError(HarnessError):
    """Raised when a validator cannot be imported from its path."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            message=f"Cannot load validator '{path}': {reason}",
            details={"path": path, "reason": reason}
        )
        self.path = path


# ==================== Configuration Errors ====================

class ConfigurationError(CustodyGeneratorError):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(
            message=f"Configuration error: {message}",
            details={"config_key": config_key} if config_key else {}
        )
        self.config_key = config_key
