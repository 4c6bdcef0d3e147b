"""Label and shape tallies across a campaign."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

from generators.scenario import Expectation, Scenario
from harness.runner import ScenarioOutcome

# Use standard logging to avoid circular imports
logger = logging.getLogger(__name__)


@dataclass
class CoverageTracker:
    """Counts what a campaign generated.

    Labels are counted once per scenario that carries them, so the
    rendered table reads as "scenarios exercising this branch".
    """

    scenarios: int = 0
    steps: int = 0
    expectations: Counter = field(default_factory=Counter)
    labels: Counter = field(default_factory=Counter)
    shapes: Counter = field(default_factory=Counter)
    statuses: Counter = field(default_factory=Counter)

    def record(self, scenario: Scenario, outcome: Optional[ScenarioOutcome] = None) -> None:
        self.scenarios += 1
        self.steps += len(scenario.steps)
        self.expectations[scenario.expected.value] += 1
        self.labels.update(label.value for label in scenario.distinct_labels)
        self.shapes.update(shape.value for shape in scenario.shapes)
        if outcome is not None:
            self.statuses[outcome.status.value] += 1

    def ratio(self, expectation: Expectation) -> float:
        if self.scenarios == 0:
            return 0.0
        return self.expectations[expectation.value] / self.scenarios

    @property
    def accept_ratio(self) -> float:
        return self.ratio(Expectation.ACCEPT)

    @property
    def reject_ratio(self) -> float:
        return self.ratio(Expectation.REJECT)

    def is_balanced(self, min_ratio: float) -> bool:
        """Both accept and reject scenarios make up at least ``min_ratio``."""
        balanced = self.accept_ratio >= min_ratio and self.reject_ratio >= min_ratio
        if not balanced:
            logger.warning(
                f"Coverage imbalance: {self.accept_ratio:.1%} accept, "
                f"{self.reject_ratio:.1%} reject (minimum {min_ratio:.1%})",
                extra={
                    "accept_ratio": self.accept_ratio,
                    "reject_ratio": self.reject_ratio,
                    "min_ratio": min_ratio,
                }
            )
        return balanced

    def render(self) -> str:
        lines = [
            f"{self.scenarios} scenarios, {self.steps} transactions",
            f"  accept: {self.expectations[Expectation.ACCEPT.value]} ({self.accept_ratio:.1%})",
            f"  reject: {self.expectations[Expectation.REJECT.value]} ({self.reject_ratio:.1%})",
            "",
            "Labels:",
        ]
        lines.extend(f"  {label} → {count}" for label, count in self.labels.most_common())
        lines.append("")
        lines.append("Shapes:")
        lines.extend(f"  {shape} → {count}" for shape, count in self.shapes.most_common())
        if self.statuses:
            lines.append("")
            lines.append("Outcomes:")
            lines.extend(f"  {status} → {count}" for status, count in self.statuses.most_common())
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenarios": self.scenarios,
            "transactions": self.steps,
            "accept_ratio": self.accept_ratio,
            "reject_ratio": self.reject_ratio,
            "expectations": dict(self.expectations),
            "labels": dict(self.labels),
            "shapes": dict(self.shapes),
            "statuses": dict(self.statuses),
        }
