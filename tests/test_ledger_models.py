"""Tests for ledger values, multisig rules and contract naming."""

import pytest
from hypothesis import given, settings, strategies as st

from core.exceptions import RedeemerDowncastError
from ledger.models import (
    Address,
    Input,
    Minting,
    Output,
    OutputReference,
    Publishing,
    RegisterDelegateRepresentative,
    Script,
    Spending,
    Transaction,
    Value,
    VerificationKey,
    Voting,
    DelegateRepresentative,
    Withdrawing,
    compare_script_purpose,
    script_purpose_key,
)
from ledger.multisig import (
    AllOf,
    AnyOf,
    AtLeast,
    Signature,
    from_data,
    is_satisfied,
    signers,
    to_data,
)
from protocol.contract import (
    CONTRACT_ADDRESS,
    CONTRACT_CREDENTIAL,
    CONTRACT_HASH,
    DELEGATES,
    FOREIGN_ASSETS,
    STATE_TOKEN_PREFIX,
    contract_held,
    delegate_of,
    foreign_assets,
    is_contract_address,
    key_hash,
    state_token,
    state_token_name,
)


POLICY = b"\xaa" * 28


def asset_values():
    """Small non-negative multi-asset values."""
    return st.dictionaries(
        st.tuples(st.sampled_from([b"", POLICY, CONTRACT_HASH]), st.binary(max_size=4)),
        st.integers(min_value=0, max_value=1_000),
        max_size=4,
    ).map(Value)


class TestValue:
    """Test multi-asset arithmetic."""

    def test_zero_entries_are_dropped(self):
        """Test values built with zero quantities equal the empty value."""
        assert Value({(POLICY, b"x"): 0}) == Value()
        assert Value({(POLICY, b"x"): 0}).is_zero()

    def test_lovelace_and_tokens(self):
        """Test accessors on a mixed value."""
        value = Value.from_lovelace(3) + Value.from_asset(POLICY, b"a", 2)

        assert value.lovelace == 3
        assert value.quantity_of(POLICY, b"a") == 2
        assert value.tokens(POLICY) == {b"a": 2}
        assert value.policies() == [POLICY]
        assert value.flatten() == [(b"", b"", 3), (POLICY, b"a", 2)]

    def test_subtraction_can_go_negative(self):
        """Test differences keep negative entries for mint deltas."""
        delta = Value.from_asset(POLICY, b"a", 1) - Value.from_asset(POLICY, b"a", 3)

        assert delta.has_negative()
        assert delta.negatives() == Value.from_asset(POLICY, b"a", -2)

    def test_restriction(self):
        """Test restricted_to and without partition a value by policy."""
        value = Value.from_lovelace(5) + Value.from_asset(POLICY, b"a", 1)

        assert value.restricted_to([POLICY]) == Value.from_asset(POLICY, b"a", 1)
        assert value.without([POLICY]) == Value.from_lovelace(5)

    def test_to_dict_is_readable(self):
        """Test readable keys for logging."""
        value = Value.from_lovelace(1) + Value.from_asset(b"\x01", b"\x02", 3)
        assert value.to_dict() == {"lovelace": 1, "01.02": 3}

    @settings(max_examples=100)
    @given(asset_values(), asset_values())
    def test_add_then_subtract_is_identity(self, left, right):
        """Test value arithmetic forms a group."""
        assert (left + right) - right == left
        assert left + (-left) == Value()

    @settings(max_examples=100)
    @given(st.lists(asset_values(), max_size=5))
    def test_sum_matches_fold(self, values):
        """Test Value.sum equals repeated addition."""
        total = Value()
        for value in values:
            total = total + value
        assert Value.sum(values) == total


class TestShapes:
    """Test structural checks on outputs and transactions."""

    def test_output_rejects_negative_value(self):
        """Test an output can never hold a negative quantity."""
        with pytest.raises(ValueError, match="negative"):
            Output(CONTRACT_ADDRESS, Value.from_lovelace(-1))

    def test_output_reference_rejects_negative_index(self):
        """Test output indexes are non-negative."""
        with pytest.raises(ValueError):
            OutputReference(b"\x00" * 32, -1)

    def test_transaction_rejects_double_spend(self):
        """Test the same reference cannot be spent twice in one transaction."""
        spent = Input(OutputReference(b"\x00" * 32, 0), Output(CONTRACT_ADDRESS, Value()))
        with pytest.raises(ValueError, match="twice"):
            Transaction(id=b"\x01", inputs=(spent, spent), outputs=())

    def test_produced_references_own_outputs(self, wallet_address):
        """Test produced() turns outputs into inputs for the next step."""
        outputs = (Output(wallet_address, Value.from_lovelace(1)), Output(CONTRACT_ADDRESS, Value()))
        tx = Transaction(id=b"\x07" * 32, inputs=(), outputs=outputs)

        produced = tx.produced()

        assert [i.output_reference for i in produced] == [
            OutputReference(b"\x07" * 32, 0),
            OutputReference(b"\x07" * 32, 1),
        ]
        assert [i.output for i in produced] == list(outputs)

    def test_transaction_rejects_spending_a_reference(self):
        """Test one output cannot be both spent and referenced."""
        shared = Input(OutputReference(b"\x00" * 32, 0), Output(CONTRACT_ADDRESS, Value()))
        with pytest.raises(ValueError, match="both spend and reference"):
            Transaction(id=b"\x01", inputs=(shared,), outputs=(), reference_inputs=(shared,))

    @pytest.mark.parametrize("amount", [0, -5])
    def test_withdrawals_must_be_positive(self, amount):
        """Test a withdrawal claims a positive amount."""
        with pytest.raises(ValueError, match="Withdrawal amounts"):
            Transaction(
                id=b"\x01", inputs=(), outputs=(), withdrawals=((CONTRACT_CREDENTIAL, amount),)
            )

    def test_withdrawals_balance_outputs(self, wallet_address, alice_custody_input):
        """Test withdrawn rewards count alongside inputs; referenced outputs do not."""
        fuel = Input(OutputReference(b"\x02" * 32, 0), Output(wallet_address, Value.from_lovelace(4)))
        tx = Transaction(
            id=b"\x03" * 32,
            inputs=(fuel,),
            outputs=(Output(wallet_address, Value.from_lovelace(10)),),
            withdrawals=((CONTRACT_CREDENTIAL, 6),),
            reference_inputs=(alice_custody_input,),
        )

        assert tx.withdrawn == Value.from_lovelace(6)
        assert tx.is_balanced()
        assert tx.total_input == Value.from_lovelace(4)


class TestScriptPurposeOrder:
    """Test the canonical redeemer ordering."""

    def test_tag_order(self):
        """Test Spend < Mint < Cert < Reward < Vote."""
        purposes = [
            Voting(DelegateRepresentative(CONTRACT_CREDENTIAL)),
            Withdrawing(CONTRACT_CREDENTIAL),
            Publishing(0, RegisterDelegateRepresentative(CONTRACT_CREDENTIAL, 1)),
            Minting(CONTRACT_HASH),
            Spending(OutputReference(b"\x00" * 32, 0)),
        ]

        ordered = sorted(purposes, key=script_purpose_key)

        assert [type(p) for p in ordered] == [Spending, Minting, Publishing, Withdrawing, Voting]

    def test_within_tag_order(self):
        """Test purposes of one tag order by their identifier."""
        first = Spending(OutputReference(b"\x00" * 32, 1))
        second = Spending(OutputReference(b"\x00" * 32, 2))

        assert compare_script_purpose(first, second) == -1
        assert compare_script_purpose(second, first) == 1
        assert compare_script_purpose(first, first) == 0

    def test_key_credentials_before_scripts(self):
        """Test key credentials order before script credentials."""
        key = Withdrawing(VerificationKey(b"\xff" * 28))
        script = Withdrawing(Script(b"\x00" * 28))
        assert compare_script_purpose(key, script) == -1


class TestMultisig:
    """Test multisig rules."""

    def test_satisfaction(self):
        """Test each rule kind against signer sets."""
        a, b, c = (Signature(key_hash(name)) for name in "abc")
        keys = {name: key_hash(name) for name in "abc"}

        assert is_satisfied(a, [keys["a"]])
        assert not is_satisfied(a, [keys["b"]])
        assert is_satisfied(AllOf((a, b)), [keys["a"], keys["b"]])
        assert not is_satisfied(AllOf((a, b)), [keys["a"]])
        assert is_satisfied(AnyOf((a, b)), [keys["b"]])
        assert not is_satisfied(AnyOf(()), keys.values())
        assert is_satisfied(AtLeast(2, (a, b, c)), [keys["a"], keys["c"]])
        assert not is_satisfied(AtLeast(2, (a, b, c)), [keys["c"]])
        assert is_satisfied(AtLeast(0, ()), [])

    def test_signers(self):
        """Test every key a rule names is listed once, sorted."""
        a, b = (Signature(key_hash(name)) for name in "ab")
        nested = AnyOf((AllOf((b, a)), AtLeast(1, (a,))))

        assert signers(nested) == sorted([key_hash("a"), key_hash("b")])
        assert signers(a) == [key_hash("a")]
        assert signers(AnyOf(())) == []

    def test_negative_quorum_rejected(self):
        """Test AtLeast cannot require a negative count."""
        with pytest.raises(ValueError):
            AtLeast(-1, ())

    @pytest.mark.parametrize("name", sorted(DELEGATES))
    def test_data_round_trip(self, name):
        """Test every configured delegate survives encoding."""
        assert from_data(to_data(DELEGATES[name])) == DELEGATES[name]

    @pytest.mark.parametrize("data", [
        None,
        {"fields": []},
        {"constructor": 0, "fields": "nope"},
        {"constructor": 0, "fields": [{"int": 1}]},
        {"constructor": 3, "fields": [{"int": "two"}, {"list": []}]},
        {"constructor": 9, "fields": []},
    ])
    def test_downcast_failures(self, data):
        """Test malformed redeemers raise RedeemerDowncastError."""
        with pytest.raises(RedeemerDowncastError):
            from_data(data)


class TestContractNaming:
    """Test state token naming and contract helpers."""

    def test_state_token_name_shape(self, alice):
        """Test names are the gov_ prefix plus a 28-byte digest."""
        name = state_token_name(alice)
        assert name.startswith(STATE_TOKEN_PREFIX)
        assert len(name) == len(STATE_TOKEN_PREFIX) + 28

    def test_names_are_distinct(self):
        """Test each delegate gets its own token."""
        names = {state_token_name(rules) for rules in DELEGATES.values()}
        assert len(names) == len(DELEGATES)

    def test_delegate_of(self, alice):
        """Test delegate_of only recognises exactly one unit of a known token."""
        assert delegate_of(state_token(alice) + Value.from_lovelace(9)) == alice
        assert delegate_of(state_token(alice, 2)) is None
        assert delegate_of(state_token(alice) + state_token(DELEGATES["bob"])) is None
        assert delegate_of(Value.from_asset(CONTRACT_HASH, STATE_TOKEN_PREFIX + b"x", 1)) is None
        assert delegate_of(Value()) is None

    def test_contract_address_by_payment(self):
        """Test contract ownership is decided by the payment credential."""
        assert is_contract_address(CONTRACT_ADDRESS)
        assert is_contract_address(Address(payment=CONTRACT_CREDENTIAL))
        assert not is_contract_address(Address(payment=VerificationKey(CONTRACT_HASH)))

    def test_contract_held_ignores_wallets(self, alice_custody_input, wallet_address):
        """Test only contract-locked inputs count as held."""
        wallet = Input(OutputReference(b"\x02" * 32, 0), Output(wallet_address, Value.from_lovelace(7)))

        assert contract_held([alice_custody_input, wallet]) == alice_custody_input.output.value

    def test_foreign_assets(self, alice):
        """Test foreign_assets strips lovelace and contract tokens."""
        noise = Value.from_asset(*FOREIGN_ASSETS[0], 4)
        value = Value.from_lovelace(2) + state_token(alice) + noise
        assert foreign_assets(value) == noise
