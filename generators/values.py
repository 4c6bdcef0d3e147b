"""Constrained generators for values, addresses and outputs.

Everything here is a Hypothesis strategy. Generators that may take an
intentionally invalid branch thread a ``labels`` accumulator in and
return ``(result, labels)`` so the caller keeps one ordered record of
which rules the step breaks.
"""

import hashlib
from typing import Iterable, Optional

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

from config.models import GenerationWeights
from core.exceptions import EmptyOutputListError, GeneratorPreconditionError
from generators.branching import fork3, weighted
from generators.labels import Label, Labels
from ledger.models import (
    Address,
    DatumHash,
    InlineDatum,
    Input,
    NoDatum,
    Output,
    OutputReference,
    Script,
    Value,
    VerificationKey,
    VOID,
)
from ledger.multisig import MultisigScript, is_satisfied, signers
from protocol.contract import (
    CONTRACT_ADDRESS,
    CONTRACT_CREDENTIAL,
    CONTRACT_HASH,
    DELEGATES,
    FOREIGN_ASSET_SUPPLY,
    FOREIGN_ASSETS,
    MIN_LOVELACE,
    STATE_TOKEN_PREFIX,
    contract_tokens,
    state_token,
    state_token_name,
)


DEFAULT_WEIGHTS = GenerationWeights()

# Per-output choice when distributing an asset: all / some / skip
SPLIT_ALL_WEIGHT = 40
SPLIT_SOME_WEIGHT = 30

MAX_LOCKED_LOVELACE = 100_000_000
FUEL_MIN_LOVELACE = 10_000_000_000
FUEL_MAX_LOVELACE = 50_000_000_000
MAX_NOISE_QUANTITY = 1_000


# ==================== Primitive strategies ====================

def hashes(size: int = 28) -> SearchStrategy[bytes]:
    return st.binary(min_size=size, max_size=size)


def lovelace_amounts() -> SearchStrategy[int]:
    return st.integers(min_value=MIN_LOVELACE, max_value=MAX_LOCKED_LOVELACE)


def credentials() -> SearchStrategy:
    """Any credential except the contract's own script."""
    return st.one_of(
        hashes().map(VerificationKey),
        hashes().filter(lambda h: h != CONTRACT_HASH).map(Script),
    )


def random_addresses() -> SearchStrategy[Address]:
    """Addresses unrelated to the contract."""
    return st.builds(
        Address,
        payment=credentials(),
        stake=st.none() | credentials(),
    )


def wallet_addresses() -> SearchStrategy[Address]:
    return st.builds(
        Address,
        payment=hashes().map(VerificationKey),
        stake=st.none() | hashes().map(VerificationKey),
    )


def datums() -> SearchStrategy:
    return st.one_of(
        st.just(NoDatum()),
        st.just(InlineDatum(VOID)),
        hashes(32).map(DatumHash),
    )


def delegates(excluding: Optional[MultisigScript] = None) -> SearchStrategy[MultisigScript]:
    candidates = [rules for rules in DELEGATES.values() if rules != excluding]
    return st.sampled_from(candidates)


def noise_assets() -> SearchStrategy[Value]:
    """A non-empty bundle of foreign assets, always covered by fuel."""
    return st.lists(
        st.tuples(
            st.sampled_from(FOREIGN_ASSETS),
            st.integers(min_value=1, max_value=MAX_NOISE_QUANTITY),
        ),
        min_size=1,
        max_size=len(FOREIGN_ASSETS),
        unique_by=lambda pair: pair[0],
    ).map(lambda pairs: Value({asset: quantity for asset, quantity in pairs}))


@st.composite
def illegal_state_token_names(draw, rules: MultisigScript) -> bytes:
    """Names in the ``gov_`` namespace that are not the delegate's token."""
    canonical = state_token_name(rules)
    suffix = draw(st.binary(min_size=0, max_size=28))
    name = STATE_TOKEN_PREFIX + suffix
    if name == canonical:
        name = STATE_TOKEN_PREFIX + suffix[::-1] + b"\x00"
    return name


def fuel_reference(seed: bytes) -> OutputReference:
    """Unique reference of the fuel input funding a step."""
    return OutputReference(hashlib.blake2b(b"fuel:" + seed, digest_size=32).digest(), 0)


@st.composite
def fuel_inputs(draw, seed: bytes) -> Input:
    """A wallet-owned input paying for whatever a step locks or sends."""
    lovelace = draw(st.integers(min_value=FUEL_MIN_LOVELACE, max_value=FUEL_MAX_LOVELACE))
    value = Value.from_lovelace(lovelace) + Value(
        {asset: FOREIGN_ASSET_SUPPLY for asset in FOREIGN_ASSETS}
    )
    return Input(fuel_reference(seed), Output(draw(wallet_addresses()), value))


@st.composite
def funded_outputs(draw) -> Output:
    """An unrelated output paid for by fuel."""
    return Output(
        address=draw(random_addresses()),
        value=Value.from_lovelace(draw(lovelace_amounts())),
        datum=draw(datums()),
    )


# ==================== Splitting ====================

def _distribute(
    draw,
    values: list[Value],
    start: int,
    policy_id: bytes,
    asset_name: bytes,
    quantity: int,
) -> None:
    if quantity == 0:
        return
    if start >= len(values):
        raise EmptyOutputListError(policy_id, asset_name, quantity)

    if start == len(values) - 1:
        given = quantity
    else:
        given = draw(fork3(
            SPLIT_ALL_WEIGHT,
            SPLIT_SOME_WEIGHT,
            st.just(quantity),
            st.integers(min_value=1, max_value=quantity),
            st.just(0),
        ))

    if given:
        values[start] = values[start].add(policy_id, asset_name, given)
        # Remainder goes over every output still in play, head included
        _distribute(draw, values, start, policy_id, asset_name, quantity - given)
    else:
        _distribute(draw, values, start + 1, policy_id, asset_name, quantity)


@st.composite
def distribute(draw, total: Value, values: list[Value]) -> list[Value]:
    """Spread every positive entry of ``total`` over ``values``.

    Raises:
        EmptyOutputListError: If ``values`` is empty and ``total`` is not.
        GeneratorPreconditionError: If ``total`` holds a negative quantity.
    """
    if total.has_negative():
        raise GeneratorPreconditionError(
            "Cannot split a value holding negative quantities",
            details={"negatives": total.negatives().to_dict()},
        )
    values = list(values)
    for policy_id, asset_name, quantity in total.flatten():
        _distribute(draw, values, 0, policy_id, asset_name, quantity)
    return values


@st.composite
def split(
    draw,
    total: Value,
    addresses: Optional[SearchStrategy[Address]] = None,
) -> list[Output]:
    """Partition ``total`` across 1-3 fresh outputs.

    The outputs' values sum to ``total`` exactly. Addresses default to
    random unrelated addresses.
    """
    addresses = addresses if addresses is not None else random_addresses()
    count = draw(st.integers(min_value=1, max_value=3))
    targets = [draw(addresses) for _ in range(count)]
    values = draw(distribute(total, [Value() for _ in targets]))
    return [Output(address, value) for address, value in zip(targets, values)]


def total_value(outputs: Iterable[Output]) -> Value:
    return Value.sum(output.value for output in outputs)


# ==================== Registration outputs ====================

@st.composite
def initial_value(
    draw,
    existing: Value,
    rules: MultisigScript,
    labels: Labels = (),
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> tuple[Value, Labels]:
    """Value locked by a prospective registration output.

    Reuses the lovelace already held when there is enough of it, tops up
    from fuel otherwise.
    """
    if existing.lovelace >= MIN_LOVELACE:
        lovelace = existing.lovelace
    else:
        lovelace = draw(lovelace_amounts())

    base = Value.from_lovelace(lovelace)
    canonical = base + state_token(rules)
    canonical_weight = 100 - (
        weights.noise + weights.illegal_quantity + weights.illegal_name + weights.no_state_token
    )

    return draw(weighted([
        (canonical_weight, st.just((canonical, labels))),
        (weights.noise, lambda: noise_assets().map(
            lambda noise: (canonical + noise, labels + (Label.FOREIGN_ASSETS_LOCKED,))
        )),
        (weights.illegal_quantity, lambda: st.integers(min_value=2, max_value=5).map(
            lambda quantity: (
                base + state_token(rules, quantity),
                labels + (Label.ILLEGAL_STATE_TOKEN_QUANTITY,),
            )
        )),
        (weights.illegal_name, lambda: illegal_state_token_names(rules).map(
            lambda name: (
                base.add(CONTRACT_HASH, name, 1),
                labels + (Label.ILLEGAL_STATE_TOKEN_NAME,),
            )
        )),
        (weights.no_state_token, st.just((base, labels))),
    ]))


@st.composite
def initial_output(
    draw,
    existing: Value,
    rules: MultisigScript,
    labels: Labels = (),
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> tuple[Output, Labels]:
    """Wrap an initial value in an output at a weighted choice of address."""
    value, labels = draw(initial_value(existing, rules, labels, weights))
    carries_token = not contract_tokens(value).is_zero()

    def escaped(address: Address) -> tuple[Address, Labels]:
        if carries_token:
            return address, labels + (Label.ESCAPING_STATE_TOKENS,)
        return address, labels

    canonical_weight = 100 - weights.missing_delegation - weights.foreign_address
    address, labels = draw(weighted([
        (canonical_weight, st.just((CONTRACT_ADDRESS, labels))),
        (weights.missing_delegation, st.just((
            Address(payment=CONTRACT_CREDENTIAL, stake=None),
            labels + (Label.LOCKED_WITHOUT_DELEGATION,),
        ))),
        (weights.foreign_address, lambda: random_addresses().map(escaped)),
    ]))
    return Output(address, value), labels


@st.composite
def initial_outputs(
    draw,
    existing: Value,
    rules: MultisigScript,
    labels: Labels = (),
    weights: GenerationWeights = DEFAULT_WEIGHTS,
) -> tuple[list[Output], Labels]:
    """0, 1 or 2 registration outputs.

    ``no_initial_output`` and ``two_initial_outputs`` weigh the edge
    counts; a single output takes the rest and is listed first so
    samples shrink toward it.
    """
    count = draw(weighted([
        (100 - weights.no_initial_output - weights.two_initial_outputs, st.just(1)),
        (weights.no_initial_output, st.just(0)),
        (weights.two_initial_outputs, st.just(2)),
    ]))
    outputs = []
    for _ in range(count):
        output, labels = draw(initial_output(existing, rules, labels, weights))
        outputs.append(output)
    return outputs, labels


# ==================== Signatories ====================

@st.composite
def satisfying_signatories(draw, rules: MultisigScript) -> tuple[bytes, ...]:
    """Key hashes that satisfy ``rules``, shrinking toward the fewest.

    Raises:
        GeneratorPreconditionError: If no set of the rule's own keys can
            satisfy it.
    """
    order = draw(st.permutations(signers(rules)))
    shortest = next(
        (n for n in range(len(order) + 1) if is_satisfied(rules, order[:n])),
        None,
    )
    if shortest is None:
        raise GeneratorPreconditionError(
            "Multisig rule cannot be satisfied by its own keys",
            details={"signers": [key.hex() for key in order]},
        )
    size = draw(st.integers(min_value=shortest, max_value=len(order)))
    return tuple(sorted(order[:size]))


@st.composite
def insufficient_signatories(draw, rules: MultisigScript) -> tuple[bytes, ...]:
    """Key hashes drawn from ``rules`` that fall short of satisfying it."""
    order = draw(st.permutations(signers(rules)))
    # Rules are monotone: once a prefix satisfies, every longer one does
    longest = 0
    while longest < len(order) and not is_satisfied(rules, order[:longest + 1]):
        longest += 1
    size = draw(st.integers(min_value=0, max_value=longest))
    return tuple(sorted(order[:size]))
