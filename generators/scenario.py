"""Scenario assembler: drive the step generator to completion."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from hypothesis import assume
from hypothesis import strategies as st

from config.models import GenerationWeights
from generators.labels import Label, Labels, ScenarioShape, distinct
from generators.oracle import check_postconditions
from generators.state import Done, ProtocolState, Step
from generators.steps import step, unspent_after
from generators.values import DEFAULT_WEIGHTS
from ledger.models import Input, Transaction

DEFAULT_MAX_STEPS = 40


class Expectation(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass(frozen=True)
class Scenario:
    """A complete transaction sequence with its expected verdict."""
    steps: tuple[Step, ...]
    final_state: ProtocolState
    shapes: tuple[ScenarioShape, ...] = ()

    @property
    def labels(self) -> Labels:
        return tuple(label for s in self.steps for label in s.labels)

    @property
    def distinct_labels(self) -> list[Label]:
        return distinct(self.labels)

    @property
    def expected(self) -> Expectation:
        """Any label anywhere makes the whole scenario a rejection."""
        return Expectation.REJECT if self.labels else Expectation.ACCEPT

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(s.transaction for s in self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected": self.expected.value,
            "labels": [label.value for label in self.distinct_labels],
            "shapes": [shape.value for shape in self.shapes],
            "transitions": [s.transition.value for s in self.steps],
            "final_state": self.final_state.to_dict(),
        }


@st.composite
def scenarios(
    draw,
    weights: Optional[GenerationWeights] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> Scenario:
    """Generate one scenario and run the post-condition oracle on it.

    Each step consumes or references every output still unspent. Samples that
    wander past ``max_steps`` are discarded rather than truncated.
    """
    weights = weights if weights is not None else DEFAULT_WEIGHTS
    state = ProtocolState()
    carried: tuple[Input, ...] = ()
    steps: list[Step] = []

    while True:
        outcome = draw(step(state, carried, weights))
        if isinstance(outcome, Done):
            break
        steps.append(outcome)
        assume(len(steps) <= max_steps)
        state = outcome.state
        carried = unspent_after(carried, outcome.transaction)

    shapes = check_postconditions([s.transaction for s in steps])
    return Scenario(steps=tuple(steps), final_state=state, shapes=shapes)
