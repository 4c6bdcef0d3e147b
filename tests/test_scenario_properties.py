"""
Property-based tests for whole generated scenarios.

Every scenario must balance, respect the registration ordering, chain
each transaction onto the outputs left unspent before it, leave at most
one state token minted and finish the full register -> unregister ->
forward cycle.
"""

from hypothesis import given, settings, strategies as st

from config.models import GenerationWeights
from generators import Expectation, ProtocolState, Transition, scenarios
from generators.steps import unspent_after
from generators.labels import ScenarioShape
from generators.oracle import check_net_mint
from ledger.models import Value, Voting
from protocol.contract import contract_tokens, is_locked_by_contract


ACCEPTING = GenerationWeights(
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


class TestScenarioLaws:
    """Test laws every generated scenario obeys."""

    @settings(max_examples=100)
    @given(scenarios())
    def test_every_transaction_balances(self, scenario):
        """Test inputs plus mint equal outputs at every step."""
        assert all(tx.is_balanced() for tx in scenario.transactions)

    @settings(max_examples=100)
    @given(scenarios())
    def test_opens_with_registration(self, scenario):
        """Test the first step from an empty UTxO set is a registration."""
        assert scenario.steps[0].transition is Transition.REGISTER

    @settings(max_examples=100)
    @given(scenarios())
    def test_cycle_completes(self, scenario):
        """Test a finished scenario registered, unregistered and forwarded."""
        assert scenario.final_state == ProtocolState(
            registered=True, unregistered=True, forwarded=True
        )
        transitions = [s.transition for s in scenario.steps]
        assert Transition.UNREGISTER in transitions
        assert transitions[-1] is Transition.FORWARD

    @settings(max_examples=100)
    @given(scenarios())
    def test_unregistered_implies_registered(self, scenario):
        """Test no intermediate state is unregistered without registration."""
        for s in scenario.steps:
            assert s.state.registered or not s.state.unregistered

    @settings(max_examples=100)
    @given(scenarios())
    def test_transactions_chain(self, scenario):
        """Test each step spends or references every output left unspent."""
        carried: tuple = ()
        for tx in scenario.transactions:
            touched = {i.output_reference for i in tx.inputs + tx.reference_inputs}
            unspent = {i.output_reference for i in carried}
            assert unspent <= touched
            assert len(touched - unspent) == 1
            carried = unspent_after(carried, tx)

    @settings(max_examples=100)
    @given(scenarios())
    def test_expectation_follows_labels(self, scenario):
        """Test any label means rejection and none means acceptance."""
        if scenario.labels:
            assert scenario.expected is Expectation.REJECT
            assert scenario.distinct_labels
        else:
            assert scenario.expected is Expectation.ACCEPT

    @settings(max_examples=100)
    @given(scenarios())
    def test_net_mint(self, scenario):
        """Test every scenario, labelled or not, leaves at most one state token minted."""
        net = Value.sum(contract_tokens(tx.mint) for tx in scenario.transactions)
        check_net_mint(net)

    @settings(max_examples=100)
    @given(scenarios())
    def test_votes_leave_state_unchanged(self, scenario):
        """Test a vote neither moves the state on nor spends contract outputs."""
        previous = ProtocolState()
        for s in scenario.steps:
            if s.transition is Transition.VOTE:
                assert s.state == previous
                assert s.transaction.mint.is_zero()
                assert not s.transaction.certificates
                assert all(not is_locked_by_contract(i.output) for i in s.transaction.inputs)
                assert all(is_locked_by_contract(i.output) for i in s.transaction.reference_inputs)
                purposes = [type(p) for p, _ in s.transaction.redeemers]
                assert purposes == [Voting]
            previous = s.state

    @settings(max_examples=50)
    @given(scenarios())
    def test_registration_shape_observed(self, scenario):
        """Test the opening registration always shows up as a shape."""
        assert scenario.shapes
        assert ScenarioShape.FORWARD_ONLY not in scenario.shapes

    @settings(max_examples=50)
    @given(st.integers(min_value=4, max_value=8).flatmap(
        lambda cap: st.tuples(st.just(cap), scenarios(max_steps=cap))
    ))
    def test_step_cap(self, capped):
        """Test scenarios longer than the cap are never produced."""
        cap, scenario = capped
        assert len(scenario.steps) <= cap


class TestCanonicalWeights:
    """Test weights that rule out every deliberate violation."""

    @settings(max_examples=50)
    @given(scenarios(weights=ACCEPTING))
    def test_all_scenarios_accept(self, scenario):
        """Test zeroed violation weights only produce accepted scenarios."""
        assert scenario.labels == ()
        assert scenario.expected is Expectation.ACCEPT

    @settings(max_examples=30)
    @given(scenarios(weights=ACCEPTING))
    def test_to_dict(self, scenario):
        """Test the readable summary of a scenario."""
        summary = scenario.to_dict()

        assert summary["expected"] == "accept"
        assert summary["labels"] == []
        assert summary["transitions"][0] == "register"
        assert summary["final_state"] == {
            "registered": True,
            "unregistered": True,
            "forwarded": True,
        }
