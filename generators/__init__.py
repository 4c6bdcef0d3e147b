"""Hypothesis strategies producing labelled custody-contract scenarios."""

from generators.labels import Label, ScenarioShape
from generators.state import DONE, ProtocolState, Step, Transition
from generators.steps import forward_assets, register, step, unregister, vote
from generators.oracle import check_postconditions
from generators.scenario import Expectation, Scenario, scenarios

__all__ = [
    "Label",
    "ScenarioShape",
    "DONE",
    "ProtocolState",
    "Step",
    "Transition",
    "register",
    "unregister",
    "forward_assets",
    "vote",
    "step",
    "check_postconditions",
    "Expectation",
    "Scenario",
    "scenarios",
]
