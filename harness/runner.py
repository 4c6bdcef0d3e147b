"""Judge a validator against one generated scenario."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from core.exceptions import GeneratorPreconditionError, ScenarioMismatchError
from generators.labels import Label
from generators.scenario import Expectation, Scenario
from harness.validator import TransactionVerdict, Validator, evaluate_transaction

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    PASSED = "passed"
    UNEXPECTED_ACCEPTANCE = "unexpected acceptance"
    UNEXPECTED_REJECTION = "unexpected rejection"
    DEFECT = "generator defect"


@dataclass
class ScenarioOutcome:
    """What the validator did with a scenario and whether that was right."""

    expected: Expectation
    status: OutcomeStatus
    labels: list[Label] = field(default_factory=list)
    verdicts: list[TransactionVerdict] = field(default_factory=list)
    defect: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status is OutcomeStatus.PASSED

    @property
    def rejected(self) -> bool:
        return any(not verdict.accepted for verdict in self.verdicts)

    def raise_for_status(self) -> None:
        """Raise ScenarioMismatchError unless the scenario passed."""
        if self.passed:
            return
        raise ScenarioMismatchError(
            status=self.status.value,
            expected=self.expected.value,
            labels=[label.value for label in self.labels],
            defect=self.defect,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected": self.expected.value,
            "status": self.status.value,
            "labels": [label.value for label in self.labels],
            "verdicts": [verdict.to_dict() for verdict in self.verdicts],
            "defect": self.defect,
        }


def check_scenario(validator: Validator, scenario: Scenario) -> ScenarioOutcome:
    """Evaluate every transaction of ``scenario`` and compare to its expectation.

    Expected-accept scenarios pass when every entry point accepts every
    transaction. Expected-reject scenarios pass when at least one
    invocation rejects; the labels explain why it should have.
    """
    expected = scenario.expected
    labels = scenario.distinct_labels
    verdicts: list[TransactionVerdict] = []

    try:
        for transaction in scenario.transactions:
            verdicts.append(evaluate_transaction(validator, transaction))
    except GeneratorPreconditionError as e:
        logger.error(
            f"Generator defect while evaluating scenario: {e.message}",
            extra={"error_type": type(e).__name__, "details": e.details}
        )
        return ScenarioOutcome(expected, OutcomeStatus.DEFECT, labels, verdicts, e.message)

    rejected = any(not verdict.accepted for verdict in verdicts)
    if expected is Expectation.ACCEPT:
        status = OutcomeStatus.UNEXPECTED_REJECTION if rejected else OutcomeStatus.PASSED
    else:
        status = OutcomeStatus.PASSED if rejected else OutcomeStatus.UNEXPECTED_ACCEPTANCE

    if status is not OutcomeStatus.PASSED:
        logger.warning(
            f"Scenario {status.value}: expected {expected.value}",
            extra={"labels": [label.value for label in labels], "steps": len(verdicts)}
        )
    return ScenarioOutcome(expected, status, labels, verdicts)


def assert_scenario(validator: Validator, scenario: Scenario) -> ScenarioOutcome:
    """check_scenario, raising ScenarioMismatchError on anything but a pass."""
    outcome = check_scenario(validator, scenario)
    outcome.raise_for_status()
    return outcome
