"""Validator harness: evaluate scenarios, tally coverage, run campaigns."""

from harness.validator import (
    AcceptAllValidator,
    EntryPoint,
    Validator,
    evaluate_transaction,
    load_validator,
)
from harness.runner import OutcomeStatus, ScenarioOutcome, assert_scenario, check_scenario
from harness.coverage import CoverageTracker
from harness.campaign import run_campaign, run_coverage

__all__ = [
    "AcceptAllValidator",
    "EntryPoint",
    "Validator",
    "evaluate_transaction",
    "load_validator",
    "OutcomeStatus",
    "ScenarioOutcome",
    "assert_scenario",
    "check_scenario",
    "CoverageTracker",
    "run_coverage",
    "run_campaign",
]
