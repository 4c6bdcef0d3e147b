"""Step generator: one state-machine transition per generated transaction.

Each transition consumes every output still unspent plus one fresh fuel
input, and balances any surplus into a change output back to the fuel's
owner. A vote is the one exception: it only references the contract
outputs so the custodied value stays where it is. Minting is never
chosen directly: it is the difference between the contract tokens a
step's outputs hold and those its inputs held, and the certificates and
redeemers follow from it.
"""

import hashlib
from typing import Optional, Sequence

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

from config.models import GenerationWeights
from core.exceptions import (
    GeneratorPreconditionError,
    MissingStateTokenError,
    UnbalancedTransactionError,
)
from generators.branching import decide, fork
from generators.labels import Label, Labels
from generators.state import DONE, ProtocolState, Step, Transition
from generators.values import (
    DEFAULT_WEIGHTS,
    delegates,
    fuel_inputs,
    funded_outputs,
    initial_outputs,
    insufficient_signatories,
    lovelace_amounts,
    random_addresses,
    satisfying_signatories,
    split,
    total_value,
)
from ledger.models import (
    ADA_POLICY_ID,
    Address,
    Certificate,
    Credential,
    Data,
    DelegateRepresentative,
    Input,
    Minting,
    Output,
    Publishing,
    RegisterDelegateRepresentative,
    Spending,
    Transaction,
    UnregisterDelegateRepresentative,
    Value,
    Voter,
    Voting,
    Withdrawing,
    VOID,
    script_purpose_key,
)
from ledger.multisig import MultisigScript, to_data
from protocol.contract import (
    ADMINISTRATOR_KEY,
    CONTRACT_ADDRESS,
    CONTRACT_CREDENTIAL,
    CONTRACT_HASH,
    DREP_DEPOSIT,
    MIN_LOVELACE,
    contract_held,
    contract_tokens,
    delegate_of,
    foreign_assets,
    is_locked_by_contract,
    state_token,
)


CUSTODIED_POLICIES = (ADA_POLICY_ID, CONTRACT_HASH)

MAX_REWARDS = 50_000_000


# ==================== Transaction assembly ====================

def transaction_id(inputs: Sequence[Input]) -> bytes:
    """Derive a transaction id from the references it spends."""
    digest = hashlib.blake2b(b"tx:", digest_size=32)
    for i in inputs:
        digest.update(i.output_reference.transaction_id)
        digest.update(i.output_reference.output_index.to_bytes(4, "big"))
    return digest.digest()


def _fuel_seed(carried: Sequence[Input]) -> bytes:
    if not carried:
        return b"genesis"
    return b"".join(sorted({i.output_reference.transaction_id for i in carried}))


def mint_delta(inputs: Sequence[Input], outputs: Sequence[Output]) -> Value:
    """Contract tokens the outputs hold minus those the inputs held."""
    produced = contract_tokens(total_value(outputs))
    consumed = contract_tokens(Value.sum(i.output.value for i in inputs))
    return produced - consumed


def unspent_after(carried: Sequence[Input], transaction: Transaction) -> tuple[Input, ...]:
    """Outputs left to spend once ``transaction`` lands on top of ``carried``."""
    spent = {i.output_reference for i in transaction.inputs}
    kept = tuple(i for i in carried if i.output_reference not in spent)
    return kept + transaction.produced()


def derive_certificates(mint: Value) -> tuple[Certificate, ...]:
    """Unregister when anything burns, register when anything mints."""
    quantities = list(contract_tokens(mint).tokens(CONTRACT_HASH).values())
    certificates: list[Certificate] = []
    if any(q < 0 for q in quantities):
        certificates.append(UnregisterDelegateRepresentative(CONTRACT_CREDENTIAL, DREP_DEPOSIT))
    if any(q > 0 for q in quantities):
        certificates.append(RegisterDelegateRepresentative(CONTRACT_CREDENTIAL, DREP_DEPOSIT))
    return tuple(certificates)


def derive_redeemers(
    inputs: Sequence[Input],
    mint: Value,
    certificates: Sequence[Certificate],
    rules: Optional[MultisigScript],
    withdrawals: Sequence[tuple[Credential, int]] = (),
    votes: Sequence[Voter] = (),
) -> tuple[tuple, ...]:
    """One redeemer per script purpose, in ledger order.

    Registrations and votes carry ``rules`` as data; every other purpose
    gets the unit redeemer.
    """
    redeemers: list[tuple] = [
        (Spending(i.output_reference), VOID)
        for i in inputs
        if is_locked_by_contract(i.output)
    ]
    redeemers.extend((Minting(policy_id), VOID) for policy_id in mint.policies())

    for index, certificate in enumerate(certificates):
        data: Data
        if isinstance(certificate, RegisterDelegateRepresentative):
            if rules is None:
                raise GeneratorPreconditionError(
                    "Registration certificate without delegate rules",
                    details={"certificate_index": index},
                )
            data = to_data(rules)
        elif isinstance(certificate, UnregisterDelegateRepresentative):
            data = VOID
        else:
            raise GeneratorPreconditionError(f"Unknown certificate: {certificate!r}")
        redeemers.append((Publishing(index, certificate), data))

    redeemers.extend(
        (Withdrawing(credential), VOID)
        for credential, _ in withdrawals
        if credential == CONTRACT_CREDENTIAL
    )

    for voter in votes:
        if voter.credential != CONTRACT_CREDENTIAL:
            continue
        if rules is None:
            raise GeneratorPreconditionError("Vote without delegate rules")
        redeemers.append((Voting(voter), to_data(rules)))

    return tuple(sorted(redeemers, key=lambda r: script_purpose_key(r[0])))


def with_change(
    inputs: Sequence[Input],
    outputs: Sequence[Output],
    mint: Value,
    change_address: Address,
    withdrawn: Value = Value(),
) -> tuple[Output, ...]:
    """Append a change output so the transaction balances exactly.

    Raises:
        UnbalancedTransactionError: If the outputs ask for more than the
            inputs, withdrawals and mint provide.
    """
    available = Value.sum(i.output.value for i in inputs) + withdrawn + mint
    change = available - total_value(outputs)
    if change.has_negative():
        raise UnbalancedTransactionError(change.negatives().to_dict())
    if change.is_zero():
        return tuple(outputs)
    return tuple(outputs) + (Output(change_address, change),)


def assemble_transaction(
    inputs: Sequence[Input],
    outputs: Sequence[Output],
    mint: Value,
    rules: Optional[MultisigScript],
    signatories: tuple[bytes, ...],
    change_address: Address,
    withdrawals: tuple[tuple[Credential, int], ...] = (),
    votes: tuple[Voter, ...] = (),
    reference_inputs: tuple[Input, ...] = (),
) -> Transaction:
    certificates = derive_certificates(mint)
    withdrawn = Value.from_lovelace(sum(amount for _, amount in withdrawals))
    return Transaction(
        id=transaction_id(inputs),
        inputs=tuple(inputs),
        outputs=with_change(inputs, outputs, mint, change_address, withdrawn),
        mint=mint,
        certificates=certificates,
        redeemers=derive_redeemers(inputs, mint, certificates, rules, withdrawals, votes),
        extra_signatories=signatories,
        withdrawals=withdrawals,
        votes=votes,
        reference_inputs=reference_inputs,
    )


def released_lovelace(held: Value, outputs: Sequence[Output]) -> bool:
    """True when less lovelace is re-locked at the contract than was held."""
    relocked = sum(o.value.lovelace for o in outputs if is_locked_by_contract(o))
    return relocked < held.lovelace


@st.composite
def admin_approval(
    draw,
    labels: Labels,
    required: bool,
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> tuple[tuple[bytes, ...], Labels]:
    """Decide whether the administrator signs the step.

    A missing signature where one is required replaces the step's labels
    outright: without it the validator must refuse whatever else the
    step does, so it is the only reason left to report.
    """
    signed = draw(decide(weights.admin_signature))
    if required and not signed:
        labels = (Label.MISSING_ADMIN_APPROVAL,)
    return ((ADMINISTRATOR_KEY,) if signed else ()), labels


# ==================== Transitions ====================

@st.composite
def register(
    draw,
    state: ProtocolState,
    carried: Sequence[Input],
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> Step:
    """Lock a fresh delegate's state token at the contract."""
    carried = tuple(carried)
    labels: Labels = ()
    fuel = draw(fuel_inputs(_fuel_seed(carried)))
    inputs = carried + (fuel,)
    held = contract_held(carried).restricted_to(CUSTODIED_POLICIES)

    withdrawn = 0
    if held.lovelace > 0:
        withdrawn = draw(fork(
            100 - weights.admin_withdrawal,
            st.just(0),
            st.integers(min_value=1, max_value=held.lovelace),
        ))

    rules = draw(delegates())
    existing = Value.from_lovelace(held.lovelace - withdrawn)
    outputs, labels = draw(initial_outputs(existing, rules, labels, weights))
    mint = mint_delta(inputs, outputs)

    if not mint.is_zero():
        locked = sum(1 for output in outputs if is_locked_by_contract(output))
        if locked == 0:
            labels = labels + (Label.NO_REQUIRED_INITIAL_OUTPUT,)
        elif locked > 1:
            labels = labels + (Label.TOO_MANY_INITIAL_OUTPUTS,)

    required = not mint.is_zero() or released_lovelace(held, outputs)
    signatories, labels = draw(admin_approval(labels, required, weights))

    transaction = assemble_transaction(
        inputs, outputs, mint, rules, signatories, fuel.output.address
    )
    registered = delegate_of(transaction.total_output) == rules
    return Step(Transition.REGISTER, labels, state.after_register(registered), transaction)


@st.composite
def unregister(
    draw,
    state: ProtocolState,
    carried: Sequence[Input],
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> Step:
    """Burn the current delegate's token, optionally minting a successor's.

    Raises:
        MissingStateTokenError: If the carried outputs do not hold exactly
            one unit of a known delegate's token.
    """
    carried = tuple(carried)
    held_tokens = contract_tokens(Value.sum(i.output.value for i in carried))
    current = delegate_of(held_tokens)
    if current is None:
        raise MissingStateTokenError(held_tokens.to_dict())

    labels: Labels = ()
    fuel = draw(fuel_inputs(_fuel_seed(carried)))
    inputs = carried + (fuel,)
    held = contract_held(carried)

    successor: Optional[MultisigScript] = None
    if draw(decide(weights.swap_delegate)):
        successor = draw(delegates(excluding=current))

    if successor is not None:
        if held.lovelace >= MIN_LOVELACE:
            lovelace = held.lovelace
        else:
            lovelace = draw(lovelace_amounts())
        address = draw(fork(weights.trapped_swap, st.just(CONTRACT_ADDRESS), random_addresses()))
        outputs = [Output(address, Value.from_lovelace(lovelace) + state_token(successor))]
        trapped = any(
            is_locked_by_contract(o) and not contract_tokens(o.value).is_zero()
            for o in outputs
        )
        if not trapped:
            labels = labels + (Label.UNTRAPPED_STATE_TOKENS,)
    else:
        outputs = draw(split(Value.from_lovelace(held.lovelace)))

    mint = mint_delta(inputs, outputs)
    signatories, labels = draw(admin_approval(labels, True, weights))

    transaction = assemble_transaction(
        inputs, outputs, mint, successor, signatories, fuel.output.address
    )
    return Step(Transition.UNREGISTER, labels, state.after_unregister(), transaction)


@st.composite
def _faithful_forward(
    draw,
    custodied: Value,
    guarded: bool,
    labels: Labels,
    weights: GenerationWeights,
) -> tuple[list[Output], Labels]:
    lovelace = custodied.lovelace
    if lovelace == 0:
        moved = draw(lovelace_amounts())
    elif lovelace == 1:
        moved = 1
    else:
        moved = draw(fork(
            weights.full_forward,
            st.just(lovelace),
            st.integers(min_value=1, max_value=lovelace - 1),
        ))

    forwarding = Value.from_lovelace(moved) + contract_tokens(custodied)
    others = draw(st.lists(funded_outputs(), min_size=0, max_size=2))
    position = draw(st.integers(min_value=0, max_value=len(others)))
    outputs = others[:position] + [Output(CONTRACT_ADDRESS, forwarding)] + others[position:]

    # Shrinks toward a single forwarding output
    if moved >= 2 and not draw(decide(100 - weights.split_forward)):
        part = draw(st.integers(min_value=1, max_value=moved - 1))
        outputs[position] = Output(CONTRACT_ADDRESS, forwarding - Value.from_lovelace(part))
        extra = draw(st.integers(min_value=0, max_value=len(outputs)))
        outputs.insert(extra, Output(CONTRACT_ADDRESS, Value.from_lovelace(part)))
        if guarded:
            labels = labels + (Label.TOO_MANY_FORWARDING_OUTPUTS,)

    return outputs, labels


@st.composite
def forward_assets(
    draw,
    state: ProtocolState,
    carried: Sequence[Input],
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> Step:
    """Move custodied lovelace and tokens without minting anything.

    Occasionally also withdraws the contract's staking rewards to the
    fuel owner; rewards leave the contract's control just like released
    lovelace, so either needs the administrator.
    """
    carried = tuple(carried)
    labels: Labels = ()
    fuel = draw(fuel_inputs(_fuel_seed(carried)))
    inputs = carried + (fuel,)
    held = contract_held(carried)
    guarded = any(is_locked_by_contract(i.output) for i in carried)
    custodied = held.restricted_to(CUSTODIED_POLICIES)

    if draw(decide(weights.faithful_forward, total=1000)):
        outputs, labels = draw(_faithful_forward(custodied, guarded, labels, weights))
    else:
        outputs = draw(split(
            custodied,
            addresses=fork(50, st.just(CONTRACT_ADDRESS), random_addresses()),
        ))
        if guarded:
            escaped = any(
                not is_locked_by_contract(o) and not contract_tokens(o.value).is_zero()
                for o in outputs
            )
            if escaped:
                labels = labels + (Label.ESCAPING_STATE_TOKENS,)
            if sum(1 for o in outputs if is_locked_by_contract(o)) > 1:
                labels = labels + (Label.TOO_MANY_FORWARDING_OUTPUTS,)

    for output in outputs:
        if is_locked_by_contract(output) and not foreign_assets(output.value).is_zero():
            raise GeneratorPreconditionError(
                "Forwarding output locks foreign assets at the contract",
                details={"value": output.value.to_dict()},
            )

    withdrawals: tuple[tuple[Credential, int], ...] = ()
    if not draw(decide(100 - weights.reward_withdrawal)):
        rewards = draw(st.integers(min_value=1, max_value=MAX_REWARDS))
        withdrawals = ((CONTRACT_CREDENTIAL, rewards),)

    required = bool(withdrawals) or (guarded and released_lovelace(held, outputs))
    signatories, labels = draw(admin_approval(labels, required, weights))

    transaction = assemble_transaction(
        inputs, outputs, Value(), None, signatories, fuel.output.address,
        withdrawals=withdrawals,
    )
    return Step(Transition.FORWARD, labels, state.after_forward(), transaction)


def voting_delegate(carried: Sequence[Input]) -> Optional[MultisigScript]:
    """The delegate whose token the contract outputs among ``carried`` hold."""
    return delegate_of(contract_held(carried))


@st.composite
def vote(
    draw,
    state: ProtocolState,
    carried: Sequence[Input],
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> Step:
    """Cast the contract's vote as the delegate it currently holds.

    The contract outputs are referenced, not spent, and every other
    carried output is swept into change with the fuel. The vote redeemer
    names the delegate rules and the delegates sign; a mismatched
    redeemer is signed by the delegate it wrongly names.

    Raises:
        MissingStateTokenError: If the contract outputs do not hold
            exactly one unit of a known delegate's token.
    """
    carried = tuple(carried)
    locked = tuple(i for i in carried if is_locked_by_contract(i.output))
    current = voting_delegate(locked)
    if current is None:
        raise MissingStateTokenError(contract_tokens(contract_held(locked)).to_dict())

    labels: Labels = ()
    fuel = draw(fuel_inputs(_fuel_seed(carried)))
    inputs = tuple(i for i in carried if not is_locked_by_contract(i.output)) + (fuel,)

    claimed = current
    if not draw(decide(100 - weights.mismatched_vote)):
        claimed = draw(delegates(excluding=current))
        labels = labels + (Label.MISMATCHED_VOTE_RULES,)

    if draw(decide(weights.delegate_signature)):
        signatories = draw(satisfying_signatories(claimed))
    else:
        signatories = draw(insufficient_signatories(claimed))
        labels = labels + (Label.MISSING_DELEGATE_APPROVAL,)

    transaction = assemble_transaction(
        inputs, [], Value(), claimed, signatories, fuel.output.address,
        votes=(DelegateRepresentative(CONTRACT_CREDENTIAL),),
        reference_inputs=locked,
    )
    return Step(Transition.VOTE, labels, state, transaction)


def step(
    state: ProtocolState,
    carried: Sequence[Input],
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> SearchStrategy:
    """Strategy for the next step, or ``DONE`` once the cycle is complete.

    With nothing carried yet, a scenario always opens with a
    registration. Afterwards each stage of register -> unregister ->
    forward runs once, and the next stage only unlocks when the previous
    one actually landed. While the contract holds a delegate's token a
    vote may slip in before any stage; it never moves the state on.
    """
    carried = tuple(carried)
    if not state.registered:
        return fork(
            100 if not carried else weights.register,
            lambda: register(state, carried, weights),
            lambda: forward_assets(state, carried, weights),
        )
    if state.unregistered and state.forwarded:
        return st.just(DONE)

    if not state.unregistered:
        advance = fork(
            weights.unregister,
            lambda: unregister(state, carried, weights),
            lambda: forward_assets(state, carried, weights),
        )
    else:
        advance = forward_assets(state, carried, weights)

    if voting_delegate(carried) is None:
        return advance
    return fork(100 - weights.vote, advance, lambda: vote(state, carried, weights))
