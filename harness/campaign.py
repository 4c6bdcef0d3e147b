"""Campaign runner: many generated scenarios against one validator.

A campaign is a Hypothesis property run outside pytest. Each example is
one scenario; its labels and shapes are emitted as Hypothesis events and
tallied in a ``CoverageTracker``. With a validator, the first mismatch is
shrunk by Hypothesis to a minimal counterexample and re-raised.
"""

import itertools
import logging
import time
from typing import Callable, Optional

from hypothesis import HealthCheck, event, given, seed, settings
from hypothesis.reporting import with_reporter

from config.models import Config
from core.logging import LogContext
from generators.scenario import Scenario, scenarios
from harness.coverage import CoverageTracker
from harness.runner import check_scenario
from harness.validator import Validator

logger = logging.getLogger(__name__)


def campaign_settings(config: Config) -> settings:
    return settings(
        max_examples=config.campaign.examples,
        deadline=None,
        database=None,
        report_multiple_bugs=False,
        suppress_health_check=[
            HealthCheck.too_slow,
            HealthCheck.data_too_large,
            HealthCheck.filter_too_much,
            HealthCheck.large_base_example,
        ],
    )


def emit_events(scenario: Scenario) -> None:
    """Report a scenario's classification to Hypothesis statistics."""
    event(f"expected: {scenario.expected.value}")
    for label in scenario.distinct_labels:
        event(f"label: {label.value}")
    for shape in scenario.shapes:
        event(f"shape: {shape.value}")


def _report(value: object) -> None:
    """Send Hypothesis reports (falsifying examples) to the log, not stdout."""
    logger.warning(str(value))


def _run(
    config: Config,
    check: Callable[[Scenario], None],
    campaign_id: Optional[str],
    validator_name: Optional[str],
) -> None:
    strategy = scenarios(weights=config.weights, max_steps=config.campaign.max_steps)
    counter = itertools.count()

    def numbered(scenario: Scenario) -> None:
        with LogContext(scenario=next(counter)):
            check(scenario)

    test = campaign_settings(config)(given(strategy)(numbered))
    if config.campaign.seed is not None:
        test = seed(config.campaign.seed)(test)

    context = LogContext(
        campaign_id=campaign_id,
        seed=config.campaign.seed,
        validator=validator_name,
    )
    with context, with_reporter(_report):
        logger.info(f"Starting campaign of {config.campaign.examples} scenarios")
        start_time = time.time()
        test()
        logger.info(f"Campaign finished in {time.time() - start_time:.2f}s")


def run_campaign(
    validator: Validator,
    config: Config,
    campaign_id: Optional[str] = None,
    validator_name: Optional[str] = None,
    tracker: Optional[CoverageTracker] = None,
) -> CoverageTracker:
    """Check ``config.campaign.examples`` scenarios against ``validator``.

    Args:
        validator: Validator under test.
        config: Loaded configuration (weights and campaign settings).
        campaign_id: Correlation id attached to every log record.
        validator_name: Import path shown in logs.
        tracker: Tally to record into; kept up to date even when the
            campaign raises.

    Returns:
        CoverageTracker with labels, shapes and outcome statuses.

    Raises:
        ScenarioMismatchError: For the first (shrunk) scenario the
            validator judged differently from its expectation.
        GeneratorPreconditionError: If generation itself broke.
        PostconditionViolation: If a generated scenario broke a
            cross-transaction law.
    """
    tracker = tracker if tracker is not None else CoverageTracker()
    mismatched = False

    def check(scenario: Scenario) -> None:
        nonlocal mismatched
        emit_events(scenario)
        outcome = check_scenario(validator, scenario)
        # After the first mismatch Hypothesis only replays while shrinking
        if not mismatched:
            tracker.record(scenario, outcome)
            mismatched = not outcome.passed
        outcome.raise_for_status()

    _run(config, check, campaign_id, validator_name)
    return tracker


def run_coverage(config: Config, campaign_id: Optional[str] = None) -> CoverageTracker:
    """Generate and classify scenarios without judging any validator."""
    tracker = CoverageTracker()

    def check(scenario: Scenario) -> None:
        emit_events(scenario)
        tracker.record(scenario)

    _run(config, check, campaign_id, None)
    return tracker
