"""Tests for Hypothesis-driven campaigns."""

import logging

import pytest

from config.models import CampaignConfig, Config, GenerationWeights
from core.exceptions import ScenarioMismatchError
from core.logging import CampaignContextFilter
from harness import AcceptAllValidator, CoverageTracker, run_campaign, run_coverage
from harness.campaign import campaign_settings


class RecordList(logging.Handler):
    """Keeps every record it handles."""

    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []
        self.addFilter(CampaignContextFilter())

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def harness_records():
    """Records logged by the harness package while a test runs."""
    handler = RecordList()
    logger = logging.getLogger("harness")
    saved = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler.records
    logger.removeHandler(handler)
    logger.setLevel(saved)


# Every deliberate violation switched off: all scenarios should be accepted
CANONICAL_WEIGHTS = GenerationWeights(
    admin_withdrawal=0,
    admin_signature=100,
    trapped_swap=100,
    faithful_forward=1000,
    split_forward=0,
    noise=0,
    illegal_quantity=0,
    illegal_name=0,
    no_state_token=0,
    missing_delegation=0,
    foreign_address=0,
    no_initial_output=0,
    two_initial_outputs=0,
    delegate_signature=100,
    mismatched_vote=0,
)

# The opening registration always mints without a signature
UNSIGNED_WEIGHTS = GenerationWeights(
    admin_signature=0,
    no_state_token=0,
    no_initial_output=0,
    two_initial_outputs=0,
)


def campaign(weights=None, examples=20, seed=7):
    return Config(
        weights=weights or GenerationWeights(),
        campaign=CampaignConfig(examples=examples, seed=seed),
    )


class RejectEverything(AcceptAllValidator):
    def mint(self, transaction, purpose):
        return False

    def spend(self, transaction, purpose):
        return False

    def publish(self, transaction, purpose):
        return False


class TestCampaignSettings:
    """Test the Hypothesis settings a campaign runs under."""

    def test_settings_follow_config(self):
        """Test example count and the disabled example database."""
        applied = campaign_settings(campaign(examples=123))

        assert applied.max_examples == 123
        assert applied.database is None
        assert applied.deadline is None
        assert applied.report_multiple_bugs is False


class TestRunCoverage:
    """Test generator-only campaigns."""

    def test_tallies_every_example(self):
        """Test each generated scenario is recorded with a shape."""
        tracker = run_coverage(campaign(examples=15), campaign_id="coverage-test")

        assert tracker.scenarios > 0
        assert tracker.steps >= 3 * tracker.scenarios
        assert sum(tracker.expectations.values()) == tracker.scenarios
        assert tracker.shapes
        assert not tracker.statuses

    def test_canonical_weights_only_accept(self):
        """Test zeroed violation weights yield no labels at all."""
        tracker = run_coverage(campaign(CANONICAL_WEIGHTS, examples=10))

        assert tracker.reject_ratio == 0.0
        assert not tracker.labels


class TestRunCampaign:
    """Test validator campaigns."""

    def test_accepting_validator_on_valid_scenarios(self):
        """Test an accept-all validator passes when nothing is labelled."""
        tracker = run_campaign(AcceptAllValidator(), campaign(CANONICAL_WEIGHTS, examples=10))

        assert tracker.scenarios > 0
        assert tracker.statuses["passed"] == tracker.scenarios

    def test_rejecting_validator_on_valid_scenarios(self):
        """Test rejecting label-free scenarios fails the campaign."""
        with pytest.raises(ScenarioMismatchError) as info:
            run_campaign(RejectEverything(), campaign(CANONICAL_WEIGHTS, examples=10))

        assert info.value.status == "unexpected rejection"

    def test_accepting_validator_on_invalid_scenarios(self):
        """Test accepting labelled scenarios fails with the labels as evidence."""
        tracker = CoverageTracker()

        with pytest.raises(ScenarioMismatchError) as info:
            run_campaign(
                AcceptAllValidator(),
                campaign(UNSIGNED_WEIGHTS, examples=10),
                tracker=tracker,
            )

        assert info.value.status == "unexpected acceptance"
        assert "missing administrator approval for transfer" in info.value.labels
        assert tracker.statuses["unexpected acceptance"] == 1

    def test_rejecting_validator_on_invalid_scenarios(self):
        """Test rejecting scenarios that should be rejected passes."""
        tracker = run_campaign(RejectEverything(), campaign(UNSIGNED_WEIGHTS, examples=10))

        assert tracker.reject_ratio == 1.0
        assert tracker.statuses["passed"] == tracker.scenarios

    def test_shrinking_is_not_counted(self):
        """Test a failing campaign tallies scenarios only up to the first mismatch."""
        tracker = CoverageTracker()

        with pytest.raises(ScenarioMismatchError):
            run_campaign(
                RejectEverything(),
                campaign(CANONICAL_WEIGHTS, examples=30),
                tracker=tracker,
            )

        failures = {status: n for status, n in tracker.statuses.items() if status != "passed"}
        assert failures == {"unexpected rejection": 1}
        assert tracker.scenarios == sum(tracker.statuses.values())
        assert tracker.scenarios <= 30


class TestCampaignLogContext:
    """Test harness records carry where in the campaign they were logged."""

    def test_records_carry_campaign_fields(self, harness_records):
        """Test start, finish and per-scenario records name campaign and seed."""
        run_campaign(
            AcceptAllValidator(),
            campaign(CANONICAL_WEIGHTS, examples=5, seed=11),
            campaign_id="ctx-test",
            validator_name="harness.validator:AcceptAllValidator",
        )

        started = [r for r in harness_records if r.getMessage().startswith("Starting campaign")]
        assert started
        assert started[0].campaign_id == "ctx-test"
        assert started[0].seed == 11
        assert started[0].validator == "harness.validator:AcceptAllValidator"
        assert not hasattr(started[0], "scenario")

    def test_mismatch_names_scenario(self, harness_records):
        """Test the mismatch warning carries the index of the failing scenario."""
        with pytest.raises(ScenarioMismatchError):
            run_campaign(RejectEverything(), campaign(CANONICAL_WEIGHTS, examples=5, seed=11))

        mismatches = [r for r in harness_records if "unexpected rejection" in r.getMessage()]
        assert mismatches
        assert mismatches[0].seed == 11
        assert isinstance(mismatches[0].scenario, int)
